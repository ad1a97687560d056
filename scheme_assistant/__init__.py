"""
Government Scheme Assistant
Multi-turn eligibility and application guidance for government benefit schemes
"""

__version__ = "1.0.0"
