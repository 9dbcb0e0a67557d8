from farmrelay.models.base import Base
from farmrelay.models.host import Host
from farmrelay.models.printer import Printer

__all__ = [
    "Base",
    "Host",
    "Printer",
]
