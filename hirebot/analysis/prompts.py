"""
Prompt builders for each analysis stage.

Later stages embed the markdown produced by earlier ones. Face analysis is
included wherever it exists, and is simply left out for audio sessions.
"""
from typing import Callable, Dict

from .stages import Stage
from ..sessions import AnalysisSession, MediaKind

CV_ANALYSIS_PROMPT = """
Analyze this CV and provide:

1. **Candidate Overview**: Name, title, key background
2. **Skills Summary**: Technical and soft skills
3. **Experience**: Work history and achievements
4. **Education**: Qualifications and certifications
5. **Strengths**: Key candidate strengths
6. **Job Fit**: Alignment with requirements

**Job Description:**
{job_description}

Keep the analysis concise and structured.
"""

_TRANSCRIPTION_ITEMS = (
    "1. **Complete Transcription**: Full text transcription with speaker identification (Interviewer/Candidate)\n"
    "2. **Key Discussion Points**: Main topics and themes covered\n"
    "3. **Questions & Responses**: Important interview questions and candidate answers\n"
    "4. **Communication Style**: Speaking patterns, clarity, and confidence indicators\n"
    "5. **Technical Content**: Any technical discussions or problem-solving moments\n"
)

VIDEO_TRANSCRIPTION_PROMPT = (
    "Analyze this video recording of an interview and provide:\n\n"
    + _TRANSCRIPTION_ITEMS
    + "6. **Visual Engagement**: Eye contact, attentiveness, and visual confidence\n"
    "7. **Interview Summary**: Brief overview of the conversation\n\n"
    "Focus on both audio content and visual behavior. "
    "Keep the response well-structured and comprehensive."
)

AUDIO_TRANSCRIPTION_PROMPT = (
    "Analyze this audio recording of an interview and provide:\n\n"
    + _TRANSCRIPTION_ITEMS
    + "6. **Interview Summary**: Brief overview of the conversation\n\n"
    "Focus on accuracy and clear speaker identification. "
    "Keep the response well-structured and comprehensive."
)

FACE_ANALYSIS_PROMPT = """
Analyze the facial expressions and non-verbal communication in this video interview and provide:

1. **Facial Expression Analysis**:
   - Overall confidence level observed in facial expressions
   - Emotional states throughout the interview (calm, nervous, engaged, etc.)
   - Consistency of expressions with verbal responses

2. **Eye Contact and Engagement**:
   - Quality and consistency of eye contact with camera/interviewer
   - Level of visual engagement and attentiveness
   - Signs of distraction or focus

3. **Non-Verbal Communication**:
   - Facial gestures and micro-expressions
   - Head movements and posture (visible portions)
   - Overall body language indicators

4. **Professional Presence**:
   - Visual confidence and composure
   - Appropriate facial expressions for interview context
   - Professional demeanor assessment

5. **Communication Synchronization**:
   - Alignment between facial expressions and verbal content
   - Authenticity indicators in expressions
   - Stress or comfort levels visible in face

6. **Interview Readiness Indicators**:
   - Preparation and alertness visible in expressions
   - Enthusiasm and interest levels
   - Professional presentation

7. **Recommendations**:
   - Visual communication strengths
   - Areas for improvement in non-verbal communication
   - Overall visual impression score (1-10)

Focus on professional behavioral analysis suitable for interview assessment. Provide specific observations with timestamps when possible.
"""


def _face_section(session: AnalysisSession) -> str:
    face = session.results.get("faceAnalysis")
    return f"\n**Face Analysis:**\n{face}\n" if face else ""


def build_cv_prompt(session: AnalysisSession) -> str:
    return CV_ANALYSIS_PROMPT.format(job_description=session.job_description)


def build_transcription_prompt(session: AnalysisSession) -> str:
    if session.media_kind is MediaKind.VIDEO:
        return VIDEO_TRANSCRIPTION_PROMPT
    return AUDIO_TRANSCRIPTION_PROMPT


def build_face_prompt(session: AnalysisSession) -> str:
    return FACE_ANALYSIS_PROMPT


def build_technical_prompt(session: AnalysisSession) -> str:
    results = session.results
    visual = " and visual observations" if "faceAnalysis" in results else ""
    return f"""
Based on the following information, provide a comprehensive technical analysis:

**Job Description:**
{session.job_description}

**CV Analysis:**
{results["cvAnalysis"]}

**Interview Transcription:**
{results["transcription"]}
{_face_section(session)}
Please provide analysis on:

1. **Technical Competency Assessment**:
   - Evaluation of technical skills demonstrated
   - Knowledge depth in relevant technologies
   - Problem-solving approach
   - Technical communication clarity

2. **Job Fit Analysis**:
   - How well the candidate matches job requirements
   - Skills alignment with job description
   - Experience relevance
   - Gap analysis

3. **Technical Strengths**:
   - Key technical strengths observed
   - Areas of expertise
   - Innovative thinking or approaches

4. **Areas for Improvement**:
   - Technical knowledge gaps
   - Skills that need development
   - Areas for growth

5. **Technical Interview Performance**:
   - Quality of technical responses
   - Depth of understanding
   - Ability to explain complex concepts
   - Problem-solving methodology

6. **Recommendations**:
   - Overall technical fit score (1-10)
   - Hiring recommendation
   - Suggested next steps
   - Training or development needs

Please provide detailed analysis with specific examples from the interview{visual}.
"""


def build_communication_prompt(session: AnalysisSession) -> str:
    results = session.results
    has_face = "faceAnalysis" in results
    visual = " and visual observations" if has_face else ""
    source = " (from speech patterns and visual analysis)" if has_face else " (from speech patterns)"
    expressions = " and expressions" if has_face else ""
    return f"""
Based on the following interview data, provide a detailed analysis of the candidate's communication and speaking style:

**Interview Transcription:**
{results["transcription"]}
{_face_section(session)}
Please analyze and provide insights on:

1. **Communication Clarity**:
   - How clearly the candidate expresses ideas
   - Use of appropriate terminology
   - Structure and organization of responses

2. **Speaking Style**:
   - Confidence level
   - Pace and rhythm of speech
   - Tone and professionalism
   - Enthusiasm and engagement

3. **Language Proficiency**:
   - Grammar and vocabulary usage
   - Fluency and articulation
   - Technical language appropriateness

4. **Interpersonal Skills**:
   - Active listening demonstrated
   - Responsiveness to questions
   - Ability to build rapport
   - Collaborative communication style

5. **Non-verbal Communication Indicators**{source}:
   - Confidence indicators in speech{expressions}
   - Hesitation or uncertainty patterns
   - Enthusiasm and energy levels
   - Stress or nervousness indicators

6. **Professional Communication**:
   - Appropriateness for business environment
   - Ability to explain complex topics simply
   - Question-asking and curiosity
   - Follow-up and clarification skills

7. **Communication Strengths**:
   - Key communication strengths observed
   - Notable positive aspects

8. **Areas for Communication Improvement**:
   - Specific areas needing development
   - Suggestions for improvement

9. **Overall Communication Assessment**:
   - Communication effectiveness score (1-10)
   - Suitability for team collaboration
   - Client-facing capability assessment

Please provide specific examples from the interview{visual} to support your analysis.
"""


def build_final_report_prompt(session: AnalysisSession) -> str:
    results = session.results
    has_face = "faceAnalysis" in results
    visual_item = "\n- Visual presence and non-verbal communication" if has_face else ""
    visual_score = "\n- Visual Presence: X/10" if has_face else ""
    return f"""
Based on all the analyses conducted, please generate a comprehensive final interview assessment report:

**Job Description:**
{session.job_description}

**CV Analysis:**
{results["cvAnalysis"]}

**Interview Transcription & Summary:**
{results["transcription"]}

**Technical Analysis:**
{results["technicalAnalysis"]}

**Communication Analysis:**
{results["communicationAnalysis"]}
{_face_section(session)}
Please generate a comprehensive final report with the following structure:

# INTERVIEW ASSESSMENT REPORT

## EXECUTIVE SUMMARY
- Overall recommendation (Hire/No Hire/Consider)
- Key strengths and concerns
- Overall fit score (1-10)

## CANDIDATE PROFILE
- Background summary from CV
- Key qualifications and experience
- Career progression assessment

## INTERVIEW PERFORMANCE ANALYSIS
- Technical competency evaluation
- Communication effectiveness
- Problem-solving approach
- Cultural fit indicators{visual_item}

## STRENGTHS
- Top 5 candidate strengths
- Specific examples from interview

## AREAS FOR DEVELOPMENT
- Key development areas
- Skills gaps identified
- Improvement recommendations

## JOB FIT ASSESSMENT
- Alignment with job requirements
- Skills match analysis
- Experience relevance
- Growth potential

## RECOMMENDATIONS
- Hiring recommendation with rationale
- Onboarding suggestions (if hired)
- Training and development needs
- Next steps in the hiring process

## SCORING BREAKDOWN
- Technical Skills: X/10
- Communication: X/10{visual_score}
- Experience Fit: X/10
- Cultural Fit: X/10
- Overall Score: X/10

## ADDITIONAL NOTES
- Any other relevant observations
- Special considerations
- Reference check suggestions

Please make this report professional, detailed, and actionable for hiring managers.
"""


PROMPT_BUILDERS: Dict[Stage, Callable[[AnalysisSession], str]] = {
    Stage.CV_ANALYSIS: build_cv_prompt,
    Stage.MEDIA_TRANSCRIPTION: build_transcription_prompt,
    Stage.FACE_ANALYSIS: build_face_prompt,
    Stage.TECHNICAL_ANALYSIS: build_technical_prompt,
    Stage.COMMUNICATION_ANALYSIS: build_communication_prompt,
    Stage.FINAL_REPORT: build_final_report_prompt,
}


def build_prompt(stage: Stage, session: AnalysisSession) -> str:
    return PROMPT_BUILDERS[stage](session)
