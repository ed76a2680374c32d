"""
Services for spending analytics and recurring charge detection.
"""
