"""
Utility functions shared by the analytics and recurring-charge services.
"""
