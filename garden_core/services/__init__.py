# =============================================================================
# garden_core/services/__init__.py
# Service Layer
# =============================================================================
# GardenDataService is imported from garden_core.services.data_service
# directly; importing it here would create an import cycle with the
# notification scheduler.

from .base_service import BaseService

__all__ = ["BaseService"]
