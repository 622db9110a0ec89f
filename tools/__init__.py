"""
Tools Package
Slot deadlines, outbound email and proof photo storage
"""

from .time_slots import (
    SLOT_DEADLINES,
    SLOT_ORDER,
    deadline_for,
    minutes_of_day,
    normalize_slots
)

from .email_service import (
    EmailService,
    email_service,
    render_missed_medication_email
)

from .storage import (
    ProofPhotoStorage,
    proof_photo_storage,
    is_data_url
)

__all__ = [
    # Time Slots
    "SLOT_DEADLINES",
    "SLOT_ORDER",
    "deadline_for",
    "minutes_of_day",
    "normalize_slots",

    # Email
    "EmailService",
    "email_service",
    "render_missed_medication_email",

    # Storage
    "ProofPhotoStorage",
    "proof_photo_storage",
    "is_data_url"
]
