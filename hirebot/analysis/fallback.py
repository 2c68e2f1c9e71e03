"""
Placeholder content used when Gemini is overloaded.

Output is deterministic markdown that says plainly no analysis was done,
and lists what a real analysis would cover, so the workflow can move on
and the UI still renders a coherent document.
"""
from typing import Optional

from .stages import Stage
from ..sessions import MediaKind

FALLBACK_NOTE = (
    "**Note**: This is a fallback response generated because the AI service is "
    "currently overloaded. A placeholder {what} has been created to allow you to "
    "continue with the analysis workflow."
)
PENDING = "[To be analyzed when AI service is available]"


def _cv_fallback(file_label: str, job_description: Optional[str]) -> str:
    job_role = (job_description or "Not provided")[:100]
    return f"""
# CV ANALYSIS - FALLBACK MODE

{FALLBACK_NOTE.format(what="analysis")}

## CV Analysis Status
- **File**: {file_label}
- **Status**: Pending AI processing
- **Job Role**: {job_role}...

## Placeholder Structure

### Personal Information
- Name: [To be extracted from CV]
- Contact: [To be extracted from CV]
- Title: [To be extracted from CV]

### Key Areas to Analyze
1. **Technical Skills**: Programming languages, frameworks, tools
2. **Experience**: Previous roles and responsibilities
3. **Education**: Degrees, certifications, training
4. **Projects**: Notable work and achievements
5. **Career Growth**: Progression and development

### Analysis Framework
- Skills alignment with job requirements
- Experience relevance assessment
- Growth potential evaluation
- Cultural fit indicators

**To get the detailed CV analysis, please retry this step when the AI service is available.**
"""


def _transcription_fallback(file_label: str, media_kind: MediaKind) -> str:
    media = media_kind.value
    is_video = media_kind is MediaKind.VIDEO
    visual_items = (
        "- Facial expressions and body language\n- Visual engagement and confidence\n"
        if is_video else ""
    )
    also_face = " and face analysis" if is_video else ""
    return f"""
# {media.upper()} TRANSCRIPTION - FALLBACK MODE

{FALLBACK_NOTE.format(what="transcription")}

## Interview Recording Analysis Status
- **File**: {file_label}
- **Type**: {media.upper()} file
- **Status**: Pending AI processing
- **Reason**: AI service temporarily unavailable

## Next Steps
1. You can continue with the technical analysis using your CV and job description
2. Retry the {media} transcription later when the service is available
3. Upload a smaller {media} file if the current one is large

## Placeholder Analysis Structure

### Speaker Identification
- **Interviewer**: [To be identified when AI service is available]
- **Candidate**: [To be identified when AI service is available]

### Key Discussion Points
- Technical competency assessment
- Experience and background discussion
- Problem-solving approach
- Cultural fit evaluation

### Interview Summary
This {media} recording will be analyzed for:
- Communication clarity and style
- Technical knowledge demonstration
- Response quality and depth
- Overall interview performance
{visual_items}
**To get the actual transcription{also_face}, please retry this step when the AI service is available.**
"""


def _face_fallback(file_label: str) -> str:
    return f"""
# FACE ANALYSIS - FALLBACK MODE

{FALLBACK_NOTE.format(what="face analysis")}

## Video Face Analysis Status
- **File**: {file_label}
- **Status**: Pending AI processing
- **Reason**: AI service temporarily unavailable

## Placeholder Analysis Structure

### Facial Expression Analysis
- **Confidence Indicators**: {PENDING}
- **Engagement Level**: {PENDING}
- **Emotional State**: {PENDING}

### Non-Verbal Communication
- **Eye Contact**: {PENDING}
- **Facial Gestures**: {PENDING}
- **Overall Demeanor**: {PENDING}

### Professional Presence
- **Visual Confidence**: {PENDING}
- **Attentiveness**: {PENDING}
- **Communication Style**: {PENDING}

**To get the actual face analysis, please retry this step when the AI service is available.**
"""


def _generic_fallback(stage: Stage, file_label: str) -> str:
    title = stage.value.replace("_", " ").upper()
    return f"""
# {title} - FALLBACK MODE

{FALLBACK_NOTE.format(what=stage.value.replace("_", " "))}

## Status
- **Source**: {file_label}
- **Status**: Pending AI processing
- **Reason**: AI service temporarily unavailable

**To get the actual {stage.value.replace("_", " ")}, please retry this step when the AI service is available.**
"""


def generate_fallback(
    stage: Stage,
    file_label: str,
    media_kind: Optional[MediaKind] = None,
    job_description: Optional[str] = None,
) -> str:
    """
    Build placeholder markdown for a stage.

    Args:
        stage: Stage the placeholder stands in for
        file_label: Name of the file the stage would have analysed
        media_kind: Recording type, used by the transcription placeholder
        job_description: Used by the CV placeholder

    Returns:
        Markdown text. Never raises for a valid Stage.
    """
    if stage is Stage.CV_ANALYSIS:
        return _cv_fallback(file_label, job_description)
    if stage is Stage.MEDIA_TRANSCRIPTION:
        return _transcription_fallback(file_label, media_kind or MediaKind.AUDIO)
    if stage is Stage.FACE_ANALYSIS:
        return _face_fallback(file_label)
    return _generic_fallback(stage, file_label)
