"""
Vehicle asset intake: VIN verification and the operator review workflow.
"""

__version__ = "0.1.0"
