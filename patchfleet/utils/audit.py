from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any, Optional


def append_audit(event: Dict[str, Any], path: Optional[Path | str]) -> None:
    """Append ``event`` as one timestamped JSON line. No-op without a path."""
    if not path:
        return
    audit_path = Path(path)
    audit_path.parent.mkdir(parents=True, exist_ok=True)
    enriched = {"ts": datetime.now(timezone.utc).isoformat(), **event}
    with audit_path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(enriched, ensure_ascii=False) + "\n")
