"""
CLI command functions and sub-apps.
"""
