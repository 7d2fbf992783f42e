"""
Microsoft Graph access: credentials, HTTP client, events API.
"""
