"""
Proposal AI Service
===================

Drafting helpers for the proposal form: title ideas, a full structured
proposal, a polished description and indexing keywords.

The text model is an injected client exposing
`async generate(prompt, system_prompt=None, max_tokens=None, temperature=None)`
that returns a dict with the text under "content". Without an API key (or
with USE_MOCK_AI) canned drafts are returned so the form stays usable offline.
"""

import re
from typing import Any, Dict, List, Optional

from thesishub.core.config import settings
from thesishub.core.exceptions import AIServiceError
from thesishub.core.logging_config import logger
from thesishub.utils.claude_client import ClaudeClient

SYSTEM_PROMPT = (
    "You are an academic writing assistant helping university students draft "
    "thesis and project proposals. Answer with the requested text only."
)

OFFLINE_TITLE = "AI-Enhanced Approach to Modern Research Challenges"

OFFLINE_DESCRIPTION = (
    "This comprehensive research aims to investigate cutting-edge technologies with a "
    "particular focus on innovative approaches to current challenges. The study will "
    "explore various methodologies and techniques to address key issues in the field, "
    "with the ultimate goal of contributing valuable insights and practical solutions "
    "to the academic community and industry professionals."
)

OFFLINE_PROPOSAL = """# Research Proposal: {title}

## Abstract
This research explores current methodologies in {field} with a focus on innovative approaches to open challenges.

## Introduction
{description}

## Problem Statement
The primary challenge addressed in this research is the need for more efficient and effective approaches to solving complex problems in the domain.

## Objectives
1. Analyze current methodologies and identify their limitations
2. Develop solutions that address the key challenges
3. Evaluate the proposed approach through rigorous testing
4. Contribute the findings to the academic community

## Methodology
- Literature review and analysis
- Experimental design and implementation
- Data collection and statistical analysis
- Comparative studies with existing approaches

## Expected Outcomes
- A validated methodology
- Empirical evidence for the proposed solution
- A framework for future research

## Timeline
- Phase 1 (Months 1-2): Literature review and problem definition
- Phase 2 (Months 3-4): Methodology design and planning
- Phase 3 (Months 5-8): Implementation and experimentation
- Phase 4 (Months 9-10): Data analysis and evaluation
- Phase 5 (Months 11-12): Documentation and dissemination

## Keywords
{keywords}
"""

OFFLINE_KEYWORDS = ["research methodology", "data analysis", "innovation", "evaluation", "literature review"]


def parse_keywords(text: str) -> List[str]:
    """Split a comma/newline separated answer into clean, de-duplicated keywords"""
    keywords: List[str] = []
    for part in re.split(r"[,\n]", text or ""):
        keyword = re.sub(r"^\s*(?:[-*•]|\d+[.)])\s*", "", part).strip().strip('"').strip()
        if keyword and keyword.lower() not in (k.lower() for k in keywords):
            keywords.append(keyword)
    return keywords


class ProposalAIService:
    """Proposal drafting over an injected text-generation client"""

    def __init__(self, client: Optional[Any] = None):
        self.client = client

    @property
    def offline(self) -> bool:
        return self.client is None

    async def _complete(self, task: str, prompt: str, max_tokens: int) -> str:
        try:
            result = await self.client.generate(
                prompt=prompt,
                system_prompt=SYSTEM_PROMPT,
                max_tokens=max_tokens,
                temperature=settings.AI_TEMPERATURE,
            )
        except Exception as e:
            logger.log_error_with_context(e, context=f"ai.{task}")
            raise AIServiceError(f"AI service could not complete '{task}'") from e

        content = (result.get("content") or "").strip()
        if not content:
            raise AIServiceError(f"AI service returned an empty response for '{task}'")
        return content

    async def generate_proposal_title(self, description: Optional[str], field: Optional[str]) -> str:
        if self.offline:
            return OFFLINE_TITLE
        prompt = (
            f"Generate exactly 3 compelling and professional research proposal titles for a "
            f"{field or 'academic'} project with this description: "
            f"\"{description or 'general research in the field'}\". "
            f"Number them 1., 2., 3. and make them concise but descriptive."
        )
        return await self._complete("title", prompt, 150)

    async def improve_description(self, description: str, field: Optional[str]) -> str:
        if self.offline:
            return OFFLINE_DESCRIPTION
        prompt = (
            f"Improve and expand this research description for a {field or 'academic'} project: "
            f"\"{description}\". Make it more professional, detailed and compelling for academic "
            f"review. Focus on clarity, significance and methodology."
        )
        return await self._complete("improve", prompt, 300)

    async def generate_full_proposal(self, form: Dict[str, Any]) -> str:
        title = form.get("title") or "Research Project"
        field = form.get("field") or "Academic Research"
        description = form.get("description") or "General research investigation"
        keywords = form.get("keywords") or []

        if self.offline:
            return OFFLINE_PROPOSAL.format(
                title=title, field=field, description=description,
                keywords=", ".join(keywords) or "Not specified",
            )

        prompt = (
            f"Create a comprehensive {form.get('project_type') or 'research'} proposal with the following details:\n"
            f"Title: \"{title}\"\n"
            f"Field: {field}\n"
            f"Description: \"{description}\"\n"
            f"Keywords: {', '.join(keywords) or 'Not specified'}\n\n"
            "Structure the proposal with these sections:\n"
            "1. Title\n"
            "2. Abstract (150-200 words)\n"
            "3. Introduction (200-300 words)\n"
            "4. Problem Statement (150-200 words)\n"
            "5. Objectives (bullet points)\n"
            "6. Methodology (300-400 words)\n"
            "7. Expected Outcomes (150-200 words)\n"
            "8. Timeline (5 phases as bullet points)\n"
            "9. References (3 academic-style references)\n\n"
            "Make it professional and detailed."
        )
        return await self._complete("full", prompt, settings.AI_MAX_TOKENS)

    async def suggest_keywords(self, title: Optional[str], description: Optional[str]) -> List[str]:
        if self.offline:
            return list(OFFLINE_KEYWORDS)
        prompt = (
            f"Based on this research title: \"{title or 'Academic Research'}\" and description: "
            f"\"{description or 'General investigation'}\", suggest 5-8 relevant academic keywords "
            f"for indexing and searchability. Return them as a comma-separated list."
        )
        return parse_keywords(await self._complete("keywords", prompt, 100))


def get_proposal_ai_service() -> ProposalAIService:
    """Build the service from settings; offline when no API key is configured"""
    if not settings.ai_enabled:
        return ProposalAIService()

    return ProposalAIService(ClaudeClient())
