"""
Fake Participant Export for Testing

Generates form-style CSV exports (with typical duplicate and blank rows)
so a drawing can be rehearsed without real participant data.
"""

import csv
import io
import random
import logging
import zipfile
from typing import Optional, List, Dict

logger = logging.getLogger(__name__)

FIRST_NAMES = [
    "Ana", "Bruno", "Carla", "Diego", "Eduarda", "Felipe", "Gabriela", "Henrique",
    "Isabela", "João", "Larissa", "Marcos", "Natália", "Otávio", "Paula", "Rafael",
    "Sabrina", "Thiago", "Vanessa", "William",
]
LAST_NAMES = [
    "Silva", "Santos", "Oliveira", "Souza", "Lima", "Pereira", "Costa",
    "Ferreira", "Almeida", "Ribeiro", "Carvalho", "Gomes",
]
CITIES = ["São Paulo", "Campinas", "Santos", "Sorocaba", "Ribeirão Preto", "Jundiaí"]

HEADERS = [
    "Carimbo de data/hora", "Nome completo", "Telefone (WhatsApp)",
    "CPF", "Cidade", "Endereço", "E-mail",
]


class FakeRosterExport:
    """
    Builds a fake form export.

    Args:
        participants: Number of distinct participants
        duplicate_chance: Chance that a row is repeated with different formatting
        blank_chance: Chance of an extra row with no usable name
        seed: Optional seed for reproducible exports
    """

    def __init__(self, participants: int = 50, duplicate_chance: float = 0.1,
                 blank_chance: float = 0.02, seed: Optional[int] = None):
        self.participants = participants
        self.duplicate_chance = duplicate_chance
        self.blank_chance = blank_chance
        self._rng = random.Random(seed)

    def _phone(self) -> str:
        area = self._rng.randint(11, 99)
        number = self._rng.randint(10000000, 99999999)
        return f"({area}) 9{str(number)[:4]}-{str(number)[4:]}"

    def _cpf(self) -> str:
        digits = f"{self._rng.randint(0, 99999999999):011d}"
        return f"{digits[:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:]}"

    def _person(self, index: int) -> Dict[str, str]:
        first = self._rng.choice(FIRST_NAMES)
        last = self._rng.choice(LAST_NAMES)
        return {
            "Carimbo de data/hora": f"2024/05/{(index % 28) + 1:02d} 10:{index % 60:02d}:00",
            "Nome completo": f"{first} {last}",
            "Telefone (WhatsApp)": self._phone(),
            "CPF": self._cpf(),
            "Cidade": self._rng.choice(CITIES),
            "Endereço": f"Rua {self._rng.choice(LAST_NAMES)}, {self._rng.randint(1, 999)}",
            "E-mail": f"{first.lower()}.{last.lower()}{index}@example.com",
        }

    def rows(self) -> List[Dict[str, str]]:
        """Generate the export rows, duplicates and blanks included."""
        rows = []
        for index in range(self.participants):
            person = self._person(index)
            rows.append(person)
            if self._rng.random() < self.duplicate_chance:
                repeat = dict(person)
                repeat["Nome completo"] = person["Nome completo"].upper()
                rows.append(repeat)
            if self._rng.random() < self.blank_chance:
                rows.append({header: "" for header in HEADERS} | {"Cidade": "X"})
        return rows

    def to_csv(self) -> str:
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=HEADERS)
        writer.writeheader()
        writer.writerows(self.rows())
        return buffer.getvalue()

    def to_zip(self, entry_name: str = "respostas.csv") -> bytes:
        """Wrap the CSV in a ZIP archive, as form exports are often downloaded."""
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
            archive.writestr(entry_name, self.to_csv())
        logger.debug(f"Built fake export archive with entry {entry_name}")
        return buffer.getvalue()
