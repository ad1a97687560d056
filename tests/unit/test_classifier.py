"""Tests for intent classification and profile extraction."""

import pytest

from scheme_assistant.agent.core import IntentType
from scheme_assistant.config import Settings, SupportedLanguage
from scheme_assistant.errors import TransientExternalFailure
from scheme_assistant.llm.classifier import (
    KeywordIntentClassifier,
    LLMIntentClassifier,
    build_classifier,
    extract_entities,
    normalize,
    parse_yes_no,
)
from scheme_assistant.llm.client import MockLLMClient

EN = SupportedLanguage.ENGLISH
HI = SupportedLanguage.HINDI

SCHEME_NAMES = {
    "pm_kisan": ["PM Kisan Samman Nidhi", "प्रधानमंत्री किसान सम्मान निधि"],
    "pmay": ["Pradhan Mantri Awas Yojana", "प्रधानमंत्री आवास योजना"],
}


@pytest.fixture
def classifier() -> KeywordIntentClassifier:
    return KeywordIntentClassifier()


# =============================================================================
# Text helpers
# =============================================================================


class TestNormalize:
    def test_punctuation_and_case(self):
        assert normalize("  Show   Schemes!! ") == "show schemes"

    def test_keeps_decimal_numbers(self):
        assert normalize("I have 2.5 acres.") == "i have 2.5 acres"

    def test_keeps_indic_marks(self):
        assert normalize("हाँ!") == "हाँ"


class TestYesNo:
    @pytest.mark.parametrize("text", ["yes", "Yes please", "ok", "हाँ", "ஆம்", "yess"])
    def test_affirmations(self, text):
        assert parse_yes_no(text) is True

    @pytest.mark.parametrize("text", ["no", "not really", "नहीं", "இல்லை"])
    def test_denials(self, text):
        assert parse_yes_no(text) is False

    @pytest.mark.parametrize("text", ["", "tell me about housing schemes today", "farmer"])
    def test_not_an_answer(self, text):
        assert parse_yes_no(text) is None


class TestExtractEntities:
    def test_age_and_income_in_one_sentence(self):
        entities = extract_entities("I am 45 years old and earn 2 lakh")

        assert entities["age"] == 45
        assert entities["income"] == 200000.0

    def test_land_holding(self):
        assert extract_entities("I have 3 acres of land") == {"land_acres": 3.0}

    def test_location_and_gender(self):
        entities = extract_entities("I am a woman from Tamil Nadu")

        assert entities["location"] == "tamil nadu"
        assert entities["gender"] == "female"

    def test_flags(self):
        assert extract_entities("I am a widow with a BPL card")["is_widow"] is True

    def test_bare_number_answers_active_question(self):
        assert extract_entities("35", active_question="age") == {"age": 35}
        assert extract_entities("50,000", active_question="income") == {"income": 50000.0}

    def test_yes_no_answers_flag_question(self):
        assert extract_entities("yes", active_question="is_bpl") == {"is_bpl": True}
        assert extract_entities("no", active_question="is_bpl") == {"is_bpl": False}

    def test_free_text_answers_open_question(self):
        assert extract_entities("weaver", active_question="occupation") == {"occupation": "weaver"}

    def test_commands_are_not_answers(self):
        assert extract_entities("go back", active_question="occupation") == {}


# =============================================================================
# Keyword classifier
# =============================================================================


class TestKeywordClassifier:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("text, language", [
        ("English", SupportedLanguage.ENGLISH),
        ("हिंदी", SupportedLanguage.HINDI),
        ("I want to continue in tamil language", SupportedLanguage.TAMIL),
    ])
    async def test_language_selection(self, classifier, text, language):
        candidate = await classifier.classify(text, EN)

        assert candidate.intent == IntentType.SELECT_LANGUAGE
        assert candidate.language == language

    @pytest.mark.asyncio
    async def test_state_name_is_not_a_language_choice(self, classifier):
        candidate = await classifier.classify("I live in Tamil Nadu", EN)

        assert candidate.intent == IntentType.PROVIDE_INFO
        assert candidate.entities == {"location": "tamil nadu"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text, intent", [
        ("show schemes", IntentType.BROWSE_SCHEMES),
        ("मुझे योजनाएं दिखाओ", IntentType.BROWSE_SCHEMES),
        ("am i eligible", IntentType.CHECK_ELIGIBILITY),
        ("how to apply", IntentType.APPLY),
        ("go back", IntentType.GO_BACK),
        ("bye", IntentType.END_SESSION),
        ("help", IntentType.HELP),
        ("main menu", IntentType.MAIN_MENU),
        ("submit", IntentType.SUBMIT_PROFILE),
        ("hello", IntentType.GREETING),
        ("yes", IntentType.AFFIRM),
        ("no", IntentType.DENY),
    ])
    async def test_commands(self, classifier, text, intent):
        candidate = await classifier.classify(text, EN)
        assert candidate.intent == intent

    @pytest.mark.asyncio
    async def test_scheme_by_name(self, classifier):
        candidate = await classifier.classify("tell me about pm kisan", EN, scheme_names=SCHEME_NAMES)

        assert candidate.intent == IntentType.SELECT_SCHEME
        assert candidate.scheme_id == "pm_kisan"

    @pytest.mark.asyncio
    async def test_scheme_by_hindi_name(self, classifier):
        candidate = await classifier.classify("प्रधानमंत्री आवास योजना के बारे में बताओ", HI,
                                              scheme_names=SCHEME_NAMES)

        assert candidate.scheme_id == "pmay"

    @pytest.mark.asyncio
    async def test_eligibility_for_named_scheme(self, classifier):
        candidate = await classifier.classify("what is my eligibility for pm kisan", EN,
                                              scheme_names=SCHEME_NAMES)

        assert candidate.intent == IntentType.CHECK_ELIGIBILITY
        assert candidate.scheme_id == "pm_kisan"

    @pytest.mark.asyncio
    async def test_reference_to_earlier_scheme(self, classifier):
        candidate = await classifier.classify("tell me more about that scheme", EN)

        assert candidate.intent == IntentType.SELECT_SCHEME
        assert candidate.reference == "scheme"
        assert candidate.scheme_id is None

    @pytest.mark.asyncio
    async def test_category_browse(self, classifier):
        candidate = await classifier.classify("show housing schemes", EN)

        assert candidate.intent == IntentType.BROWSE_SCHEMES
        assert candidate.category == "housing"

    @pytest.mark.asyncio
    async def test_flag_answer_is_profile_info(self, classifier):
        candidate = await classifier.classify("no", EN, active_question="is_widow")

        assert candidate.intent == IntentType.PROVIDE_INFO
        assert candidate.entities == {"is_widow": False}

    @pytest.mark.asyncio
    async def test_profile_statement(self, classifier):
        candidate = await classifier.classify("I earn 90000 rupees a year", EN)

        assert candidate.intent == IntentType.PROVIDE_INFO
        assert candidate.entities["income"] == 90000.0
        assert candidate.confidence == 0.8

    @pytest.mark.asyncio
    async def test_gibberish_is_unknown_with_low_confidence(self, classifier):
        candidate = await classifier.classify("asdfgh", EN)

        assert candidate.intent == IntentType.UNKNOWN
        assert candidate.confidence < 0.5

    @pytest.mark.asyncio
    async def test_empty_text(self, classifier):
        candidate = await classifier.classify("   ", EN)

        assert candidate.intent == IntentType.UNKNOWN
        assert candidate.confidence == 0.0


# =============================================================================
# LLM classifier
# =============================================================================


class TestLLMClassifier:
    @pytest.mark.asyncio
    async def test_parses_provider_json(self):
        client = MockLLMClient([{
            "intent": "check_eligibility",
            "confidence": 0.92,
            "entities": {"age": 40, "favourite_colour": "blue", "income": None},
            "scheme_id": "pmay",
            "language": "hindi",
            "reference": "scheme",
        }])

        candidate = await LLMIntentClassifier(client).classify("क्या मैं पात्र हूँ", HI, scheme_names=SCHEME_NAMES)

        assert candidate.intent == IntentType.CHECK_ELIGIBILITY
        assert candidate.confidence == 0.92
        assert candidate.entities == {"age": 40}
        assert candidate.scheme_id == "pmay"
        assert candidate.language == SupportedLanguage.HINDI
        assert candidate.reference == "scheme"
        assert client.last_prompt == "क्या मैं पात्र हूँ"

    @pytest.mark.asyncio
    async def test_unknown_scheme_and_labels_are_dropped(self):
        client = MockLLMClient([{
            "intent": "dance", "confidence": "high", "scheme_id": "made_up", "language": "french",
        }])

        candidate = await LLMIntentClassifier(client).classify("hmm", EN, scheme_names=SCHEME_NAMES)

        assert candidate.intent == IntentType.UNKNOWN
        assert candidate.confidence == 0.5
        assert candidate.scheme_id is None
        assert candidate.language is None

    @pytest.mark.asyncio
    async def test_confidence_is_clamped(self):
        client = MockLLMClient([{"intent": "help", "confidence": 7}])

        candidate = await LLMIntentClassifier(client).classify("help", EN)

        assert candidate.confidence == 1.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["not json at all", "[1, 2]"])
    async def test_unparseable_reply_is_unknown(self, raw):
        candidate = await LLMIntentClassifier(MockLLMClient([raw])).classify("hello", EN)

        assert candidate.intent == IntentType.UNKNOWN
        assert candidate.confidence == 0.0

    @pytest.mark.asyncio
    async def test_provider_outage_propagates(self):
        client = MockLLMClient([TransientExternalFailure("down", capability="llm")])

        with pytest.raises(TransientExternalFailure):
            await LLMIntentClassifier(client).classify("hello", EN)


class TestBuildClassifier:
    def test_keyword_by_default(self):
        assert isinstance(build_classifier(Settings(intent_classifier="keyword")), KeywordIntentClassifier)

    def test_llm_backend(self):
        settings = Settings(intent_classifier="llm")
        classifier = build_classifier(settings, client=MockLLMClient())

        assert isinstance(classifier, LLMIntentClassifier)
