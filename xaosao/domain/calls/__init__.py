"""Calls Domain - per-minute audio/video call bookings"""
