"""LLM chain for synthesizing the Business Requirements Document."""

from app.chains._generation import generate_json
from app.core.brd_inputs import BRDInputs
from app.core.config import Settings, get_settings
from app.core.exceptions import ResponseParseError
from app.core.llm_providers import TextGenerator
from app.core.logging import get_logger
from app.core.stage_result import StageErr, StageOk, StageResult

logger = get_logger(__name__)

BRD_SECTIONS = (
    "executiveSummary",
    "projectOverview",
    "businessObjectives",
    "scopeDefinition",
    "stakeholderAnalysis",
    "functionalAnalysis",
    "nonFunctionalAnalysis",
    "decisionAnalysis",
    "riskAssessment",
    "intelligenceSummary",
    "confidenceReport",
)

# ruff: noqa: E501
SYSTEM_PROMPT = """You are a senior business analyst generating an intelligence-driven Business Requirements Document.

1. Write like a professional analyst presenting to executives. Every sentence must carry substance.
2. Cite specific data in every paragraph: requirement IDs (REQ-xxx), stakeholder names, decision IDs (DEC-xxx) and confidence percentages.
3. Synthesize, don't list. Find patterns and draw connections between requirements.
4. Never use filler phrases like "various stakeholders" or "comprehensive solution". Name the actual entities.
5. Generate ONLY from the provided extracted intelligence. Never invent data.
6. If duplicate requirements exist, consolidate them and note the convergence as evidence of importance.
Output ONLY valid JSON, no markdown, no explanation."""


def build_brd_prompt(inputs: BRDInputs) -> str:
    """Synthesis task built from the aggregated project intelligence."""
    description = (
        f"Project description: {inputs.project_description}\n" if inputs.project_description else ""
    )
    channels_json = ", ".join(f'"{channel}"' for channel in inputs.channels)
    channels_text = ", ".join(channel.replace("_", " ") for channel in inputs.channels)
    average = f"{inputs.average_confidence:.2f}"

    return f"""You are generating an Intelligence-Driven BRD for project "{inputs.project_name}".
{description}
========== EXTRACTED INTELLIGENCE DATA ==========

SOURCES ANALYZED ({inputs.source_count} total):
{inputs.sources_block}
Communication channels: {channels_text}

REQUIREMENTS EXTRACTED ({inputs.requirement_count} total):
Category breakdown: {inputs.category_breakdown}
Priority breakdown: {inputs.priority_breakdown}
Average confidence: {inputs.average_confidence * 100:.0f}%

Full requirements:
{inputs.requirements_block}

STAKEHOLDERS IDENTIFIED ({inputs.stakeholder_count} total):
{inputs.stakeholders_block}

DECISIONS EXTRACTED ({inputs.decision_count} total):
{inputs.decisions_block or "No decisions identified."}

CONFLICTS DETECTED ({inputs.conflict_count} total):
{inputs.conflicts_block or "No conflicts detected."}

TIMELINE ({inputs.timeline_count} events):
{inputs.timeline_block or "No timeline events identified."}

SOURCE CONTENT (for deeper context):
{inputs.source_context_block}

========== END DATA ==========

Now generate the BRD as JSON. Rules:
1. executiveSummary: 4-6 paragraphs starting with a domain context paragraph.
2. projectOverview: 2-3 paragraphs referencing specific topics from the source content.
3. businessObjectives: 3-5 sentence descriptions with business context and rationale.
4. scopeDefinition items must be full sentences with explanation, not labels.
5. stakeholderAnalysis, functionalAnalysis, nonFunctionalAnalysis, decisionAnalysis and riskAssessment: substantive multi-paragraph analysis.
6. Cite requirement IDs, stakeholder names and decision IDs inline.

Return ONLY valid JSON:
{{
  "executiveSummary": "<executive summary>",
  "projectOverview": "<project overview>",
  "businessObjectives": [
    {{
      "id": "OBJ-001",
      "title": "<objective title>",
      "description": "<3-5 sentence description>",
      "successCriteria": "<measurable success criteria>",
      "linkedRequirements": ["REQ-xxx"],
      "metrics": "<KPIs to track>",
      "owner": "<stakeholder name responsible>"
    }}
  ],
  "scopeDefinition": {{
    "inScope": ["<item with explanation>"],
    "outOfScope": ["<item with reasoning>"],
    "assumptions": ["<key assumption>"],
    "constraints": ["<constraint identified>"]
  }},
  "stakeholderAnalysis": "<stakeholder analysis>",
  "functionalAnalysis": "<functional requirements analysis>",
  "nonFunctionalAnalysis": "<non-functional requirements analysis>",
  "decisionAnalysis": "<decisions and governance analysis>",
  "riskAssessment": "<risk and conflict analysis with recommendations>",
  "intelligenceSummary": {{
    "totalSources": {inputs.source_count},
    "communicationChannels": [{channels_json}],
    "totalRequirements": {inputs.requirement_count},
    "totalStakeholders": {inputs.stakeholder_count},
    "totalDecisions": {inputs.decision_count},
    "totalConflicts": {inputs.conflict_count},
    "overallConfidence": {average},
    "categoryBreakdown": "{inputs.category_breakdown}",
    "priorityBreakdown": "{inputs.priority_breakdown}",
    "summary": "<intelligence summary paragraph>"
  }},
  "confidenceReport": {{
    "highConfidence": {inputs.high_confidence},
    "mediumConfidence": {inputs.medium_confidence},
    "lowConfidence": {inputs.low_confidence},
    "overallScore": {average},
    "coverageGaps": ["<identified gap>"],
    "recommendations": ["<specific actionable recommendation>"]
  }}
}}"""


def generate_brd(
    generator: TextGenerator,
    inputs: BRDInputs,
    settings: Settings | None = None,
) -> StageResult:
    """
    Synthesize the BRD from aggregated intelligence.

    Args:
        generator: Text-generation backend for the run
        inputs: Aggregated project intelligence
        settings: Optional settings override

    Returns:
        StageOk(dict) keyed by BRD section, or StageErr. A response that
        parses to something other than a JSON object is unparseable.
    """
    settings = settings or get_settings()

    result = generate_json(
        generator,
        system_instruction=SYSTEM_PROMPT,
        user_prompt=build_brd_prompt(inputs),
        max_tokens=settings.BRD_MAX_TOKENS,
        stage="brd",
    )
    if not isinstance(result, StageOk):
        return result

    if not isinstance(result.value, dict):
        return StageErr.from_error(ResponseParseError(str(result.value)))

    missing = [section for section in BRD_SECTIONS if section not in result.value]
    if missing:
        logger.warning(f"BRD response is missing sections: {', '.join(missing)}")

    return StageOk(result.value)
