"""
Unit Tests for the AI proposal assistant
"""
import pytest

from thesishub.core.exceptions import AIServiceError
from thesishub.services.proposal_ai import (
    OFFLINE_KEYWORDS, OFFLINE_TITLE, SYSTEM_PROMPT, ProposalAIService, parse_keywords,
)

from tests.mocks.mock_ai import MockAIClient


class TestParseKeywords:

    def test_commas_newlines_and_bullets(self):
        text = '1. Machine Learning, - Edge AI\n* privacy\n"Federated Learning"'
        assert parse_keywords(text) == ['Machine Learning', 'Edge AI', 'privacy', 'Federated Learning']

    def test_duplicates_removed_case_insensitively(self):
        assert parse_keywords('NLP, nlp, Transformers') == ['NLP', 'Transformers']

    def test_empty(self):
        assert parse_keywords('') == []


class TestOfflineMode:

    @pytest.mark.asyncio
    async def test_canned_drafts_without_client(self):
        service = ProposalAIService()
        assert service.offline
        assert await service.generate_proposal_title('anything', 'CS') == OFFLINE_TITLE
        assert await service.suggest_keywords('t', 'd') == OFFLINE_KEYWORDS

    @pytest.mark.asyncio
    async def test_offline_full_proposal_uses_form(self):
        text = await ProposalAIService().generate_full_proposal({
            'title': 'Quantum Routing', 'field': 'Networks', 'keywords': ['qkd', 'routing'],
        })
        assert 'Quantum Routing' in text
        assert 'Networks' in text
        assert 'qkd, routing' in text


class TestWithClient:

    @pytest.mark.asyncio
    async def test_prompt_includes_form_details(self):
        client = MockAIClient('1. Title A\n2. Title B\n3. Title C')
        service = ProposalAIService(client)

        titles = await service.generate_proposal_title('Detecting fraud in payments', 'Finance')

        assert titles.startswith('1. Title A')
        assert client.call_count == 1
        assert 'Detecting fraud in payments' in client.last_prompt
        assert 'Finance' in client.last_prompt
        assert client.calls[0]['system_prompt'] == SYSTEM_PROMPT

    @pytest.mark.asyncio
    async def test_keywords_are_parsed(self):
        service = ProposalAIService(MockAIClient('fraud detection, anomaly detection, payments'))
        assert await service.suggest_keywords('Fraud', 'Payments') == [
            'fraud detection', 'anomaly detection', 'payments',
        ]

    @pytest.mark.asyncio
    async def test_client_failure_becomes_ai_service_error(self):
        client = MockAIClient()
        client.error = RuntimeError('upstream timeout')
        with pytest.raises(AIServiceError):
            await ProposalAIService(client).improve_description('short text', 'Biology')

    @pytest.mark.asyncio
    async def test_empty_answer_is_an_error(self):
        with pytest.raises(AIServiceError):
            await ProposalAIService(MockAIClient('   ')).improve_description('short text', 'Biology')
