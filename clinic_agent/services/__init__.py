"""
Services module for external API integrations.

Key components:
- ClinicService: Async HTTP client for the clinic appointments backend
  (departments, free slots, patient registration, booking).
- ClinicServiceError: Raised for non-2xx responses and network failures.

Usage examples:
```python
from clinic_agent.services import ClinicService

service = ClinicService()
categories = await service.get_categories()
slots = await service.get_available_slots(1, "2024-05-21", "2024-05-21")
await service.aclose()
```
"""

from clinic_agent.services.clinic_client import ClinicService, ClinicServiceError

__all__ = ["ClinicService", "ClinicServiceError"]
