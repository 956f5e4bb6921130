from __future__ import annotations

import re

from domain.ports import KeyExtractor

_PPA_RE = re.compile(r"\bPPA\s*:\s*(\d+)\b", flags=re.IGNORECASE)


def ppa_of_source(source: str) -> int:
    """'PPA:101' -> 101. Aceita também só o número."""
    m = _PPA_RE.search(source or "")
    if m:
        return int(m.group(1))
    s = str(source).strip()
    if s.isdigit():
        return int(s)
    raise ValueError(f"Fonte inválida (esperado 'PPA:<n>'): {source!r}")


def ppas_in_subscription(text: str) -> list[int]:
    return [int(x) for x in _PPA_RE.findall(text or "")]


def build_subscription(keys) -> str:
    return "; ".join(f"PPA:{k}" for k in sorted(int(k) for k in keys))


class PpaKeyExtractor(KeyExtractor):
    def key_from(self, measurement, metadata) -> int:
        # metadata.id é o "PPA" do sinal
        try:
            return int(metadata.id)
        except Exception:
            s = str(metadata.id)
            return int("".join(ch for ch in s if ch.isdigit()) or "0")
