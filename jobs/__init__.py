"""
Job steps of the cartridge path audit.

Each step takes a parameter bag and returns a StepStatus.
"""

from typing import Any, Callable, Dict

from . import comparison_report, send_difference

STEPS: Dict[str, Callable[..., Any]] = {
    'compare': comparison_report.execute,
    'notify': send_difference.execute,
}

__all__ = ['STEPS', 'comparison_report', 'send_difference']
