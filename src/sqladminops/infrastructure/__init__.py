"""
Infrastructure layer: SQL Server, remote management, configuration and export.
"""
