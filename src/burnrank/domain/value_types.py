from __future__ import annotations
from typing import NewType, Literal

Address  = NewType("Address", str)    # 0x-prefixed, lowercase
ChainKey = NewType("ChainKey", str)   # config key, e.g. "ethereum"
Phase    = Literal["scan", "resolve"]

NULL_ADDRESS = Address("0x" + "0" * 40)
UNRANKED = 0
