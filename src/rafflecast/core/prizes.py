"""
Prize Catalog

Ordered set of unique prize labels with one active label, the prize the
next drawing is worth.
"""

import logging
from typing import Optional, List

from .errors import PrizeError

logger = logging.getLogger(__name__)

# Active label when the catalog is empty
DEFAULT_PRIZE = "Brinde Surpresa"


class PrizeCatalog:
    """Ordered unique prize labels plus the active-label pointer."""

    def __init__(self, labels: Optional[List[str]] = None):
        self._labels: List[str] = []
        for label in labels or []:
            label = label.strip()
            if label and label not in self._labels:
                self._labels.append(label)
        self._active = self._labels[0] if self._labels else DEFAULT_PRIZE

    @property
    def labels(self) -> List[str]:
        return list(self._labels)

    @property
    def active(self) -> str:
        return self._active

    def __contains__(self, label: str) -> bool:
        return label in self._labels

    def __len__(self) -> int:
        return len(self._labels)

    @staticmethod
    def clean(label: str) -> str:
        """Validate and trim a label."""
        label = (label or "").strip()
        if not label:
            raise PrizeError("Prize label cannot be empty")
        return label

    def add(self, label: str) -> str:
        label = self.clean(label)
        if label in self._labels:
            raise PrizeError(f"Prize already exists: {label}")
        self._labels.append(label)
        return label

    def remove(self, label: str) -> str:
        """
        Remove a label.

        Returns:
            The active label after removal
        """
        if label not in self._labels:
            raise PrizeError(f"Unknown prize: {label}")
        self._labels.remove(label)
        if self._active == label:
            self._active = self._labels[0] if self._labels else DEFAULT_PRIZE
            logger.info(f"Active prize reassigned to {self._active}")
        return self._active

    def select(self, label: str) -> str:
        if label not in self._labels and label != DEFAULT_PRIZE:
            raise PrizeError(f"Unknown prize: {label}")
        self._active = label
        return label

    def copy(self) -> "PrizeCatalog":
        catalog = PrizeCatalog(self._labels)
        catalog._active = self._active
        return catalog

    def to_dict(self) -> dict:
        return {"labels": self.labels, "active": self._active}
