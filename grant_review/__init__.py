"""
Grant Review Engine

Assignment distribution, assessment lifecycle and multi-assessor result
aggregation for peer review of funding applications.
"""

__version__ = "1.0.0"
