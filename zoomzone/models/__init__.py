from zoomzone.models.booking import Booking, BookingConfirmation, BookingCreate, BookingPublic
from zoomzone.models.integration import IntegrationCredential, IntegrationStatus
from zoomzone.models.slot import Slot, TimeInterval

__all__ = [
    "Booking",
    "BookingConfirmation",
    "BookingCreate",
    "BookingPublic",
    "IntegrationCredential",
    "IntegrationStatus",
    "Slot",
    "TimeInterval",
]
