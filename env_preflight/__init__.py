"""
Pre-flight environment checker that reports what to fix before running project setup.
"""

__all__ = ["probes", "profile", "remediation", "report", "rules", "formatting", "cli"]
__version__ = "0.1.0"
