"""Debug records for naming provider calls.

With `generation.log_requests` on, every provider call writes one JSON file
under ./logs/. Naming prompts carry personal details (English name, birth
year, traits), so a record holds only what is needed to debug sampling,
latency and failures: model, the sampling fields actually sent, prompt and
reply lengths, a short prompt fingerprint, token counts and the error text.
Prompt text, reply text and credentials are never written.
"""

import hashlib
import json
import logging
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any

from .base import TokenUsage

logger = logging.getLogger(__name__)


def get_logs_dir() -> Path:
    """Get logs directory, create if needed."""
    logs_dir = Path("./logs")
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir


def prompt_fingerprint(text: str) -> str:
    """Stable short digest, enough to tell whether two calls shared a prompt."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:12]


def build_call_record(
    provider: str,
    params: dict[str, Any],
    system_prompt: str,
    prompt: str,
    *,
    reply: str | None = None,
    usage: TokenUsage | None = None,
    elapsed: float | None = None,
    response_id: str | None = None,
    error: str | None = None,
) -> dict[str, Any]:
    """Summarize one call. `params` is the request as sent to the SDK."""
    return {
        "timestamp": datetime.now().isoformat(),
        "provider": provider,
        "model": params.get("model"),
        "sampling": {
            k: params[k] for k in ("temperature", "top_p", "max_tokens") if k in params
        },
        "system_length": len(system_prompt),
        "prompt_length": len(prompt),
        "prompt_fingerprint": prompt_fingerprint(prompt),
        "reply_length": len(reply) if reply is not None else None,
        "usage": asdict(usage) if usage is not None else None,
        "response_id": response_id if isinstance(response_id, str) else None,
        "elapsed_seconds": round(elapsed, 3) if elapsed is not None else None,
        "error": error,
    }


def log_provider_call(record: dict[str, Any]) -> Path | None:
    """Write `record` to its own file. Returns the path, or None if the write failed."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    log_file = get_logs_dir() / f"{timestamp}_{record['provider']}_complete.json"
    try:
        with open(log_file, "w", encoding="utf-8") as f:
            json.dump(record, f, indent=2, ensure_ascii=False)
    except OSError as exc:
        logger.warning("Failed to write provider debug log %s: %s", log_file, exc)
        return None
    return log_file
