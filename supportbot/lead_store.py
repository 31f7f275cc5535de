"""
In-memory lead capture.

Leads live only for the process lifetime; the list is append-only.
"""
import logging
import threading
import time
from typing import Any, List

from .models.chat_models import Lead

logger = logging.getLogger(__name__)


class LeadStore:
    def __init__(self):
        self._leads: List[Lead] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._leads)

    def add(self, payload: Any) -> Lead:
        """Validate and store a lead.

        Raises:
            MissingContact: If neither email nor phone is given.
        """
        lead = Lead.from_payload(payload, lead_id=str(int(time.time() * 1000)))
        with self._lock:
            self._leads.append(lead)
        logger.info(f"[LEADS] Stored lead {lead.id} (total: {len(self._leads)})")
        return lead

    def all(self) -> List[Lead]:
        with self._lock:
            return list(self._leads)
