"""
Certification exam engine
Question pools, timed exam sessions, attempt policy, scoring and result history
"""

__version__ = '1.0.0'
