"""
Orders Domain

Booking, lifecycle transitions, earnings and reminders for delivery orders.
"""
