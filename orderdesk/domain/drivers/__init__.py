"""
Drivers Domain

Driver self-registration and admin moderation.
"""
