"""
State of the connection (client ↔ instrument) edit modal.

closed → creating → closed, or closed → editing → closed. Closing always
goes through reset_form(), which restores every field to its default.
Search terms for the pickers live alongside but survive a reset.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from atelier.config import config
from atelier.models import ClientInstrument


class FormMode(str, Enum):
    CLOSED = "closed"
    CREATING = "creating"
    EDITING = "editing"


@dataclass
class ConnectionFormFields:
    client_id: str = ""
    instrument_id: str = ""
    relationship_type: str = config.connections.default_relationship_type
    notes: str = ""


class ConnectionForm:
    """Create/edit form for client-instrument connections."""

    def __init__(self):
        self.mode = FormMode.CLOSED
        self.fields = ConnectionFormFields()
        self.editing_id: Optional[str] = None

        self.client_search_term = ""
        self.instrument_search_term = ""
        self.connection_search_term = ""

    @property
    def is_open(self) -> bool:
        return self.mode is not FormMode.CLOSED

    def open_for_create(self, client_id: str = "", instrument_id: str = "") -> None:
        """Open an empty form, optionally preselecting a client or instrument."""
        self.fields = ConnectionFormFields(client_id=client_id, instrument_id=instrument_id)
        self.editing_id = None
        self.mode = FormMode.CREATING

    def open_for_edit(self, connection: ClientInstrument) -> None:
        """Open the form filled from an existing connection."""
        self.fields = ConnectionFormFields(
            client_id=connection.client_id,
            instrument_id=connection.instrument_id,
            relationship_type=connection.relationship_type,
            notes=connection.notes or "",
        )
        self.editing_id = connection.id
        self.mode = FormMode.EDITING

    def set_relationship_type(self, relationship_type: str) -> None:
        if relationship_type not in config.connections.relationship_types:
            raise ValueError(f"Unknown relationship type: {relationship_type!r}")
        self.fields.relationship_type = relationship_type

    def reset_form(self) -> None:
        """Restore defaults and close."""
        self.fields = ConnectionFormFields()
        self.editing_id = None
        self.mode = FormMode.CLOSED

    def close_modal(self) -> None:
        self.reset_form()

    def payload(self) -> Dict[str, Any]:
        """Values to submit to the store."""
        data = {
            "client_id": self.fields.client_id,
            "instrument_id": self.fields.instrument_id,
            "relationship_type": self.fields.relationship_type,
            "notes": self.fields.notes or None,
        }
        if self.mode is FormMode.EDITING:
            data["id"] = self.editing_id
        return data
