from __future__ import annotations

from typing import List, Sequence


def inter_arrival_gaps(stamps: Sequence[float]) -> List[float]:
    return [b - a for a, b in zip(stamps, stamps[1:])]


def mean_gap(gaps: Sequence[float], n_stamps: int) -> float:
    # divisor = número de timestamps (não de gaps), mantido igual ao
    # comportamento em produção; confirmar antes de mudar
    return sum(gaps) / n_stamps


def window_healthy(stamps: Sequence[float], min_interval: float, use_average: bool) -> bool:
    """
    Veredito de uma janela de chegadas.

    - menos de 2 timestamps: sem evidência -> False
    - estrito: False no primeiro gap > min_interval
    - média: False se a média dos gaps > min_interval
    """
    if len(stamps) < 2:
        return False

    gaps = inter_arrival_gaps(stamps)
    if use_average:
        return mean_gap(gaps, len(stamps)) <= min_interval

    for g in gaps:
        if g > min_interval:
            return False
    return True
