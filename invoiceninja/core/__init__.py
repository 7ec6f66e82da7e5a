"""
Core configuration for the Invoice Ninja client.
"""
