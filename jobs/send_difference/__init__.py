"""
Send Site Cartridge Path Difference - job step

Input: today's cartridge_difference_*.json files in the working folder
Output: notification email; processed files moved to {workingfolder}/archive
"""

from .send_difference_job import execute

__all__ = ['execute']
