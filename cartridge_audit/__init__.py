"""
Cartridge Path Audit
Compares the cartridge path of a site across pairs of instances, persists the
differences as dated JSON reports and mails them once a day.
"""

__version__ = "1.0.0"
