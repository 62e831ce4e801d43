"""
Streamy - signaling coordination for one-to-many live broadcasts
"""
