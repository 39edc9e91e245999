"""
Cartridge Path Comparison Report - job step

Responsibilities:
- Validate the job parameter bag
- Obtain an OCAPI token
- Fetch and diff the cartridge path of each host pair
- Persist the site report to the working folder

Input: hostInstances, ocapiVersion, serviceName, workingfolder, siteId, disableStep
Output: cartridge_difference_{YYYYMMDD}_{siteId}.json
"""

from .comparison_report_job import build_site_report, execute

__all__ = ['build_site_report', 'execute']
