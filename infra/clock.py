from time import time
from domain.ports import Clock

# epoch seconds (float): carimbo dos relatórios publicados
class SystemClock(Clock):
    def now_epoch(self) -> float:
        return time()
