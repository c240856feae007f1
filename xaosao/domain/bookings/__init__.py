"""Bookings Domain - service bookings, escrow, check-in and completion"""
