"""
Prompt Templates
================

Prompts for the three generative steps of the pipeline. Each asks for a
single JSON object whose keys match the payload schema of the stage.

Version: 0.1.0
"""

from services.regulatory_monitoring.models import AnalyzedUpdate, ClassifiedUpdate, RawDocument


ANALYSIS_INSTRUCTIONS = """Assess this document against the EU AI Act (Regulation (EU) 2024/1689).

1. relevance_score (0-100): how pertinent the document is to the AI Act.
   - 90-100: directly about the AI Act (amendments, delegated acts, official guidance)
   - 70-89: very relevant (significant compliance impact)
   - 50-69: moderately relevant (related regulatory context)
   - 0-49: low relevance
2. impact_level: critical | high | medium | low
   - critical: immediate mandatory changes, sanctions, prohibitions
   - high: new obligations, short deadlines, significant changes
   - medium: guidance, recommendations, long deadlines
   - low: informational, no action required
3. affected_stakeholders: any of providers, deployers, distributors, importers, authorities, all
4. key_topics: 3 to 5 main themes (e.g. "high-risk systems", "GPAI", "transparency")
5. deadlines: every deadline mentioned, as ISO dates (YYYY-MM-DD)
6. action_required: whether immediate action is required
7. confidence_score (0-100): your confidence in this assessment

Respond ONLY with valid JSON:
{
  "relevance_score": <number 0-100>,
  "ai_act_relevance": <boolean>,
  "impact_level": "<critical|high|medium|low>",
  "affected_stakeholders": [<strings>],
  "key_topics": [<3-5 strings>],
  "deadlines": [<ISO dates>],
  "action_required": <boolean>,
  "confidence_score": <number 0-100>,
  "reasoning": "<2-3 sentences>"
}"""


CLASSIFICATION_INSTRUCTIONS = """Classify this regulatory update under the EU AI Act (2024/1689).

1. update_type: amendment | delegated_act | implementing_act | guidance | faq | enforcement
2. impacted_domains (all that apply): Annex I (prohibited practices), Annex III (high-risk
   systems), Annex IV (technical documentation), GPAI, Transparency, Governance,
   Market surveillance, Sanctions
3. concerned_actors: any of providers, deployers, distributors, importers, authorities
4. temporal_urgency: immediate (< 1 month) | 3_months | 6_months | 1_year | future (> 12 months)
5. related_articles: AI Act articles concerned (e.g. ["Article 6", "Article 52"])
6. detects_contradiction: does the document contradict or modify existing provisions?

Respond ONLY with valid JSON:
{
  "update_type": "<type>",
  "impacted_domains": [<strings>],
  "concerned_actors": [<strings>],
  "temporal_urgency": "<urgency>",
  "related_articles": [<strings>],
  "detects_contradiction": <boolean>,
  "contradiction_details": "<if applicable>",
  "extracted_dates": [<ISO dates>],
  "extracted_articles": [<strings>],
  "extracted_annexes": [<strings>],
  "normative_changes": [<strings>]
}"""


SYNTHESIS_INSTRUCTIONS = """Write an actionable compliance insight for this update.

1. executive_summary: 2-3 clear, decision-oriented sentences
2. key_points: 3-5 bullets with the essentials
3. practical_implications: 3-4 concrete impacts for organizations
4. recommended_actions: 3-5 specific actions
   {"description": "...", "priority": "urgent|high|medium|low", "deadline": "YYYY-MM-DD or null"}
5. compliance_checklist: 3-5 verifiable tasks
   {"task": "...", "required": true|false, "deadline": "YYYY-MM-DD or null", "related_article": "Article X or null"}
6. estimated_impact_score (0-100): severity of the impact on a typical organization

Respond ONLY with valid JSON:
{
  "executive_summary": "<text>",
  "key_points": [<strings>],
  "practical_implications": [<strings>],
  "recommended_actions": [<objects>],
  "compliance_checklist": [<objects>],
  "estimated_impact_score": <number 0-100>
}"""


def _excerpt(text: str, limit: int) -> str:
    return text[:limit]


def analysis_prompt(document: RawDocument, excerpt_chars: int = 3000) -> str:
    """Prompt for the relevance/impact analysis of one document."""
    published = document.published_date.isoformat() if document.published_date else "unknown"
    return (
        f"Source: {document.source}\n"
        f"Title: {document.title}\n"
        f"Document type: {document.document_type.value}\n"
        f"Published: {published}\n"
        f"Content:\n{_excerpt(document.raw_content, excerpt_chars)}\n\n"
        f"{ANALYSIS_INSTRUCTIONS}"
    )


def classification_prompt(update: AnalyzedUpdate, excerpt_chars: int = 2000) -> str:
    """Prompt for the legal classification of an analyzed update."""
    document, analysis = update.document, update.analysis
    return (
        f"Title: {document.title}\n"
        f"Source: {document.source}\n"
        f"Impact: {analysis.impact_level.value}\n"
        f"Relevance: {analysis.relevance_score:g}/100\n"
        f"Stakeholders: {', '.join(analysis.affected_stakeholders)}\n"
        f"Topics: {', '.join(analysis.key_topics)}\n"
        f"Content:\n{_excerpt(document.raw_content, excerpt_chars)}\n\n"
        f"{CLASSIFICATION_INSTRUCTIONS}"
    )


def synthesis_prompt(classified: ClassifiedUpdate, excerpt_chars: int = 2000) -> str:
    """Prompt for the human-readable insight of a classified update."""
    document = classified.analyzed.document
    analysis = classified.analyzed.analysis
    classification = classified.classification
    return (
        f"Document: {document.title}\n"
        f"Impact: {analysis.impact_level.value}\n"
        f"Type: {classification.update_type.value}\n"
        f"Urgency: {classification.temporal_urgency.value}\n"
        f"Actors: {', '.join(a.value for a in classification.concerned_actors)}\n"
        f"Domains: {', '.join(classification.impacted_domains)}\n"
        f"Content:\n{_excerpt(document.raw_content, excerpt_chars)}\n\n"
        f"{SYNTHESIS_INSTRUCTIONS}"
    )
