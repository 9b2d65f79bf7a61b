from typing import Any, Dict, Literal

# Kinds of remote objects the normalizers understand
EntityKind = Literal["post", "comment", "profile"]

# A raw or canonical record (plain dict)
Record = Dict[str, Any]
