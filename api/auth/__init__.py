"""
Caller authentication (API key header).
"""
