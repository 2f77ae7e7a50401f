"""FastAPI service that creates personal Roblox places from a template.

This package provides the REST API that relays place-creation requests
to the Roblox Open Cloud API.
"""

__version__ = "1.0.0"
