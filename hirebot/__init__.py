"""
HireBot - step-by-step AI analysis of job interviews.
"""
__version__ = "1.0.0"
