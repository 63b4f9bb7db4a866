"""SQLAlchemy ORM models for the save and return service.

All models are exported from this module for convenient imports:
    from savereturn.models import Email, SavedForm, ...

Models are organized by table:
- saved_form.py: SavedForm (v2 save progress)
- email.py: Email (confirmation tokens), Validity
- magic_link.py: MagicLink (removed by the legacy cascade)
- save_return.py: SaveReturn (legacy publisher records)
"""

from savereturn.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from savereturn.models.email import Email, Validity
from savereturn.models.magic_link import MagicLink
from savereturn.models.save_return import SaveReturn
from savereturn.models.saved_form import SavedForm

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    # v2 save progress
    "SavedForm",
    # Email tokens
    "Email",
    "Validity",
    # Legacy publisher
    "MagicLink",
    "SaveReturn",
]
