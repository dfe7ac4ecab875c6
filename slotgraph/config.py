"""slotgraph default parameters"""
import os

MARSHAL_CONFIG = {
    # 지원되지 않는 값 → 생략 (strict 모드에서는 EncodeError)
    "lenient": os.environ.get("SLOTGRAPH_LENIENT", "false").lower() == "true",
    "wire_version": "slotgraph.v1",   # pack() frame tag
}
