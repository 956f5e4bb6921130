from typing import Mapping, Optional
from domain.ports import PpaMapper


class DictPpaMapper(PpaMapper):
    """PPA de entrada do comando -> PPA de saída do comando filtrado."""

    def __init__(self, command_map: Mapping[int, int]):
        self._map = {int(k): int(v) for k, v in command_map.items()}

    @property
    def inputs(self) -> set[int]:
        return set(self._map.keys())

    def try_map(self, ppa_in: int) -> Optional[int]:
        return self._map.get(int(ppa_in))
