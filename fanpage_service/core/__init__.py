"""
Core components: the Graph API channel, payload normalizers and the
real-time connection registry.
"""
