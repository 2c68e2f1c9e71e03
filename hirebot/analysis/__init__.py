"""
Interview analysis pipeline.

This module runs the multi-step analysis of an interview:
- CV analysis
- Media transcription (audio or video)
- Face / non-verbal analysis (video only)
- Technical and communication assessment
- Final hiring report

CV, transcription and face analysis fall back to placeholder content
when Gemini is overloaded.
"""

from .stages import Stage, StageSpec, STAGE_SPECS, parse_stage, public_name, fallback_stages
from .fallback import generate_fallback
from .workflow import AnalysisWorkflow, StageOutcome

__all__ = [
    'Stage',
    'StageSpec',
    'STAGE_SPECS',
    'parse_stage',
    'public_name',
    'fallback_stages',
    'generate_fallback',
    'AnalysisWorkflow',
    'StageOutcome',
]
