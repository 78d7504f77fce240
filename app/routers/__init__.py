"""
API Routers
Separate router modules for each resource.
"""

from app.routers import security_profile

__all__ = ["security_profile"]
