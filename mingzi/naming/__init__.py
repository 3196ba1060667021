"""Name generation pipeline: lexicon, fallback synthesis, prompts, parsing, orchestration."""

from .fallback import synthesize_fallback
from .lexicon import SURNAME_LIST
from .orchestrator import BatchOrchestrator, GeneratedBatch
from .parser import ParseResult, decode_name_record, extract_json_candidate
from .prompts import NamingPrompt, build_prompt

__all__ = [
    "BatchOrchestrator",
    "GeneratedBatch",
    "NamingPrompt",
    "ParseResult",
    "SURNAME_LIST",
    "build_prompt",
    "decode_name_record",
    "extract_json_candidate",
    "synthesize_fallback",
]
