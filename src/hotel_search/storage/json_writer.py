"""JSON snapshot helpers for search pages and room options."""
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional


class JsonStore:
    def __init__(self, root: Path) -> None:
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    async def write(
        self,
        data: Iterable[dict[str, object]],
        *,
        filename: str,
        subdir: str | None = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Path:
        target_dir = self.root / subdir if subdir else self.root
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / filename
        serialisable: dict[str, Any] = {
            "generated_at": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        }
        if metadata:
            serialisable["metadata"] = metadata
        serialisable["items"] = list(data)
        path.write_text(json.dumps(serialisable, indent=2, default=str))
        return path


def snapshot_name(prefix: str, *parts: object) -> str:
    """Build a filesystem-safe, timestamped snapshot filename."""
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    tokens = [prefix, *(str(part) for part in parts if part not in (None, "")), stamp]
    safe = "_".join(token.strip().replace(" ", "-").replace("/", "-") for token in tokens)
    return f"{safe}.json"
