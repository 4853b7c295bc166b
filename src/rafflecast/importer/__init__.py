"""RaffleCast Participant Importers"""

from .normalizer import RosterNormalizer, normalize, map_headers, normalize_header

__all__ = ["RosterNormalizer", "normalize", "map_headers", "normalize_header"]
