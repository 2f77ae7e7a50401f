"""Business logic services.

This package contains the client that talks to the Roblox Open Cloud API
and classifies its responses for the API endpoints.
"""
