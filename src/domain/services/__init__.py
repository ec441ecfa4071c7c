"""Domain Services.

This package contains domain services that implement business logic
without infrastructure dependencies.
"""

from src.domain.services.smart_update import SmartUpdateService

__all__ = ['SmartUpdateService']
