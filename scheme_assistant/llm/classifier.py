"""
Intent Classification
Turns an utterance into an intent plus extracted profile facts.
The keyword classifier is deterministic and works offline; the LLM classifier
delegates to a configured provider and expects JSON back.
"""
import difflib
import json
import re
import unicodedata
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from ..agent.core import IntentType
from ..config import SupportedLanguage
from ..observability import get_logger
from .client import BaseLLMClient

logger = get_logger(__name__)

PROFILE_FIELDS = ("age", "income", "location", "occupation", "gender",
                  "is_widow", "is_disabled", "is_bpl", "land_acres", "caste_category")
NUMERIC_FIELDS = {"age", "income", "land_acres"}
FLAG_FIELDS = {"is_widow", "is_disabled", "is_bpl"}


class IntentCandidate(BaseModel):
    """Classifier output for one utterance"""
    intent: IntentType
    confidence: float = Field(ge=0.0, le=1.0)
    entities: Dict[str, Any] = Field(default_factory=dict)
    scheme_id: Optional[str] = None
    category: Optional[str] = None
    language: Optional[SupportedLanguage] = None
    reference: Optional[str] = None


def normalize(text: str) -> str:
    """Lower-case, collapse whitespace and drop punctuation, keeping Indic combining marks"""
    t = (text or "").strip().lower()
    kept: List[str] = []
    for ch in t:
        if ch.isspace() or ch == "-":
            kept.append(" ")
            continue
        if ch in ".,":
            kept.append(ch)
            continue
        cat = unicodedata.category(ch)
        if cat and cat[0] in {"L", "M", "N"}:
            kept.append(ch)
    t = "".join(kept)
    t = re.sub(r"(?<!\d)[.,]|[.,](?!\d)", " ", t)
    return re.sub(r"\s+", " ", t).strip()


def _has_any(text: str, words: Sequence[str], prefix: bool = True) -> bool:
    """
    Phrases match anywhere; single words match whole tokens. Indic words also
    match as a token prefix since suffixes attach to the stem.
    """
    tokens = text.split()
    padded = f" {text} "
    for w in words:
        if " " in w:
            if f" {w} " in padded or (not w.isascii() and w in text):
                return True
        elif w in tokens:
            return True
        elif prefix and not w.isascii() and any(tok.startswith(w) for tok in tokens):
            return True
    return False


LANGUAGE_WORDS = {
    SupportedLanguage.ENGLISH: ["english", "अंग्रेज़ी", "अंग्रेजी", "ஆங்கிலம்"],
    SupportedLanguage.HINDI: ["hindi", "हिंदी", "हिन्दी", "இந்தி"],
    SupportedLanguage.TAMIL: ["tamil", "तमिल", "தமிழ்"],
}

YES_WORDS = ["yes", "y", "yeah", "yep", "ok", "okay", "sure", "confirm",
             "हाँ", "हां", "जी", "ठीक", "haan",
             "ஆம்", "ஆமா", "ஆமாம்", "சரி"]
NO_WORDS = ["no", "n", "nope", "not", "cancel",
            "नहीं", "ना", "nahi",
            "இல்லை", "இல்ல", "வேண்டாம்"]

KEYWORDS: Dict[IntentType, List[str]] = {
    IntentType.GO_BACK: ["go back", "back", "previous", "वापस", "पीछे", "பின் செல்", "பின்னால்", "முந்தைய"],
    IntentType.END_SESSION: ["end", "bye", "goodbye", "exit", "quit", "stop", "समाप्त", "बंद करो", "अलविदा",
                             "முடிக்க", "முடித்து", "போதும்"],
    IntentType.HELP: ["help", "what can you do", "मदद", "सहायता", "உதவி"],
    IntentType.MAIN_MENU: ["main menu", "menu", "start over", "मेनू", "मुख्य", "முதன்மை", "மெனு"],
    IntentType.SUBMIT_PROFILE: ["submit", "send my details", "जमा", "சமர்ப்பி"],
    IntentType.APPLY: ["apply", "how to apply", "application", "आवेदन", "अप्लाई", "விண்ணப்ப"],
    IntentType.CHECK_ELIGIBILITY: ["eligible", "eligibility", "qualify", "पात्र", "योग्य", "தகுதி"],
    IntentType.BROWSE_SCHEMES: ["schemes", "show schemes", "list", "what schemes", "योजनाएँ", "योजनाएं", "योजनाओं",
                                "திட்டங்கள்", "திட்டங்களை"],
    IntentType.GREETING: ["hi", "hello", "hey", "namaste", "vanakkam", "नमस्ते", "வணக்கம்"],
}

CATEGORY_WORDS: Dict[str, List[str]] = {
    "housing": ["housing", "house", "home", "आवास", "घर", "வீடு", "வீட்டு"],
    "agriculture": ["farm", "farming", "agriculture", "kisan", "किसान", "खेती", "விவசாய"],
    "health": ["health", "hospital", "medical", "स्वास्थ्य", "चिकित्सा", "மருத்துவ"],
    "education": ["education", "school", "college", "scholarship", "शिक्षा", "छात्रवृत्ति", "கல்வி", "உதவித்தொகை"],
    "pension": ["pension", "old age", "पेंशन", "ஓய்வூதிய"],
    "women_welfare": ["women", "mahila", "महिलाओं", "மகளிர்"],
    "financial": ["bank", "account", "loan", "बैंक", "வங்கி"],
    "insurance": ["insurance", "बीमा", "காப்பீடு"],
}

REFERENCE_WORDS = ["that scheme", "this scheme", "the scheme", "that one", "same scheme",
                   "वह योजना", "इस योजना", "उस योजना", "वही योजना",
                   "அந்தத் திட்ட", "அந்த திட்ட", "இந்தத் திட்ட", "இந்த திட்ட"]

STATES: Dict[str, List[str]] = {
    "tamil nadu": ["tamil nadu", "tamilnadu", "तमिलनाडु", "தமிழ்நாடு", "தமிழ்நாட்டில்"],
    "maharashtra": ["maharashtra", "महाराष्ट्र"],
    "karnataka": ["karnataka", "कर्नाटक", "கர்நாடக"],
    "kerala": ["kerala", "केरल", "கேரள"],
    "uttar pradesh": ["uttar pradesh", "उत्तर प्रदेश"],
    "bihar": ["bihar", "बिहार"],
    "delhi": ["delhi", "दिल्ली", "டெல்லி"],
    "west bengal": ["west bengal", "पश्चिम बंगाल"],
    "rajasthan": ["rajasthan", "राजस्थान"],
    "andhra pradesh": ["andhra pradesh", "आंध्र प्रदेश", "ஆந்திர"],
}

OCCUPATIONS: Dict[str, List[str]] = {
    "farmer": ["farmer", "farming", "किसान", "விவசாயி"],
    "student": ["student", "studying", "छात्र", "छात्रा", "மாணவர்", "மாணவி"],
    "labourer": ["labourer", "laborer", "worker", "मजदूर", "கூலி"],
    "self_employed": ["shop", "business", "self employed", "दुकान", "व्यापार", "கடை"],
    "unemployed": ["unemployed", "no job", "बेरोजगार", "வேலையில்லை"],
}

GENDERS: Dict[str, List[str]] = {
    "female": ["woman", "female", "lady", "girl", "महिला", "औरत", "பெண்"],
    "male": ["man", "male", "boy", "पुरुष", "आदमी"],
}

FLAGS: Dict[str, List[str]] = {
    "is_widow": ["widow", "विधवा", "விதவை"],
    "is_disabled": ["disabled", "disability", "handicapped", "दिव्यांग", "विकलांग", "மாற்றுத்திறன்"],
    "is_bpl": ["bpl", "below poverty", "गरीबी रेखा", "வறுமைக் கோட்டு"],
}

AGE_PATTERN = re.compile(r"(\d{1,3})\s*(?:years|year|yrs|yr|साल|वर्ष|வயது|வயசு)")
AGE_PREFIX_PATTERN = re.compile(r"\b(?:age|aged|i am|im|उम्र|आयु|வயது)\s*(?:is\s*)?(\d{1,3})(?!\d)")
INCOME_PATTERN = re.compile(
    r"(?:income|earn|earning|salary|आय(?!ु)|कमाई|வருமானம்)\D{0,20}?(\d[\d,]*(?:\.\d+)?)\s*"
    r"(lakh|lakhs|लाख|லட்சம்|thousand|हज़ार|हजार|ஆயிரம்)?"
)
AMOUNT_PATTERN = re.compile(r"(\d[\d,]*(?:\.\d+)?)\s*(lakh|lakhs|लाख|லட்சம்|thousand|हज़ार|हजार|ஆயிரம்)")
LAND_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*(?:acre|acres|एकड़|ஏக்கர்)")
NUMBER_PATTERN = re.compile(r"^\s*(\d[\d,]*(?:\.\d+)?)\s*(lakh|lakhs|लाख|லட்சம்|thousand|हज़ार|हजार|ஆயிரம்)?\s*$")

MULTIPLIERS = {
    "lakh": 100000, "lakhs": 100000, "लाख": 100000, "லட்சம்": 100000,
    "thousand": 1000, "हज़ार": 1000, "हजार": 1000, "ஆயிரம்": 1000,
}


def _amount(number: str, unit: Optional[str]) -> float:
    value = float(number.replace(",", ""))
    return value * MULTIPLIERS.get(unit or "", 1)


def _lookup(text: str, table: Mapping[str, Sequence[str]]) -> Optional[str]:
    for canonical, words in table.items():
        if _has_any(text, words):
            return canonical
    return None


def parse_yes_no(text: str) -> Optional[bool]:
    """Short yes/no answers only; longer sentences are left to the intent rules"""
    t = normalize(text)
    if not t or len(t.split()) > 3:
        return None
    if _has_any(t, NO_WORDS, prefix=False):
        return False
    if _has_any(t, YES_WORDS, prefix=False):
        return True
    if len(t) <= 6:
        # small spelling slips from speech recognition
        best_yes = max(difflib.SequenceMatcher(None, t, y).ratio() for y in YES_WORDS)
        best_no = max(difflib.SequenceMatcher(None, t, n).ratio() for n in NO_WORDS)
        if best_yes >= 0.75 and best_yes >= best_no + 0.1:
            return True
        if best_no >= 0.75 and best_no >= best_yes + 0.1:
            return False
    return None


def extract_entities(text: str, active_question: Optional[str] = None) -> Dict[str, Any]:
    """Profile facts stated in the utterance"""
    t = normalize(text)
    entities: Dict[str, Any] = {}

    land = LAND_PATTERN.search(t)
    if land:
        entities["land_acres"] = float(land.group(1))

    income = INCOME_PATTERN.search(t)
    if income:
        entities["income"] = _amount(income.group(1), income.group(2))
    else:
        amount = AMOUNT_PATTERN.search(t)
        if amount:
            entities["income"] = _amount(amount.group(1), amount.group(2))

    age = AGE_PATTERN.search(t) or AGE_PREFIX_PATTERN.search(t)
    if age:
        entities["age"] = int(age.group(1))

    location = _lookup(t, STATES)
    if location:
        entities["location"] = location
    occupation = _lookup(t, OCCUPATIONS)
    if occupation:
        entities["occupation"] = occupation
    gender = _lookup(t, GENDERS)
    if gender:
        entities["gender"] = gender
    for flag, words in FLAGS.items():
        if _has_any(t, words):
            entities[flag] = True

    if active_question and active_question not in entities:
        bare = NUMBER_PATTERN.match(t)
        if active_question in NUMERIC_FIELDS and bare:
            value = _amount(bare.group(1), bare.group(2))
            entities[active_question] = int(value) if active_question == "age" else value
        elif active_question in FLAG_FIELDS:
            answer = parse_yes_no(t)
            if answer is not None:
                entities[active_question] = answer
        elif active_question not in NUMERIC_FIELDS and t and not bare and len(t.split()) <= 3:
            if parse_yes_no(t) is None and not _has_any(t, sum(KEYWORDS.values(), [])):
                entities[active_question] = t
    return entities


class BaseIntentClassifier(ABC):
    """Intent classification capability"""

    @abstractmethod
    async def classify(self,
                       text: str,
                       language: SupportedLanguage,
                       active_question: Optional[str] = None,
                       scheme_names: Optional[Mapping[str, Sequence[str]]] = None) -> IntentCandidate:
        """
        Args:
            text: Recognized utterance
            language: Session language
            active_question: Profile field the assistant last asked about
            scheme_names: scheme id -> names in every language, for scheme mentions
        """
        pass


class KeywordIntentClassifier(BaseIntentClassifier):
    """Deterministic English / Hindi / Tamil keyword rules"""

    def match_scheme(self,
                     text: str,
                     scheme_names: Optional[Mapping[str, Sequence[str]]]) -> Tuple[Optional[str], str]:
        """Longest scheme name found in the text, and the text with that name cut out"""
        t = normalize(text)
        if not scheme_names:
            return None, t
        best_id, best_name = None, ""
        for scheme_id, names in sorted(scheme_names.items()):
            for name in [scheme_id.replace("_", " "), *names]:
                n = normalize(name)
                if n and n in t and len(n) > len(best_name):
                    best_id, best_name = scheme_id, n
        if best_id is None:
            return None, t
        return best_id, re.sub(r"\s+", " ", t.replace(best_name, " ")).strip()

    async def classify(self,
                       text: str,
                       language: SupportedLanguage,
                       active_question: Optional[str] = None,
                       scheme_names: Optional[Mapping[str, Sequence[str]]] = None) -> IntentCandidate:
        t = normalize(text)
        if not t:
            return IntentCandidate(intent=IntentType.UNKNOWN, confidence=0.0)

        scheme_id, rest = self.match_scheme(t, scheme_names)
        entities = extract_entities(rest, active_question)
        category = _lookup(t, CATEGORY_WORDS)
        reference = "scheme" if _has_any(t, REFERENCE_WORDS) else None

        def candidate(intent: IntentType, confidence: float = 0.9, **extra) -> IntentCandidate:
            return IntentCandidate(intent=intent, confidence=confidence, entities=entities,
                                   scheme_id=scheme_id, category=category, reference=reference, **extra)

        words = t.split()
        if "location" not in entities and (len(words) <= 3 or _has_any(t, ["language", "भाषा", "மொழி"])):
            for lang, names in LANGUAGE_WORDS.items():
                if _has_any(t, names):
                    return candidate(IntentType.SELECT_LANGUAGE, language=lang)

        if active_question in FLAG_FIELDS and active_question in entities:
            return candidate(IntentType.PROVIDE_INFO)

        answer = parse_yes_no(t)
        if answer is not None:
            return candidate(IntentType.AFFIRM if answer else IntentType.DENY)

        for intent in (IntentType.GO_BACK, IntentType.END_SESSION, IntentType.HELP,
                       IntentType.MAIN_MENU, IntentType.SUBMIT_PROFILE, IntentType.CHECK_ELIGIBILITY,
                       IntentType.APPLY):
            if _has_any(t, KEYWORDS[intent]):
                return candidate(intent)

        if scheme_id or reference:
            return candidate(IntentType.SELECT_SCHEME)
        if _has_any(t, KEYWORDS[IntentType.BROWSE_SCHEMES]) or (category and not entities):
            return candidate(IntentType.BROWSE_SCHEMES)
        if entities:
            return candidate(IntentType.PROVIDE_INFO, confidence=0.8)
        if _has_any(t, KEYWORDS[IntentType.GREETING]):
            return candidate(IntentType.GREETING)
        return candidate(IntentType.UNKNOWN, confidence=0.3)


CLASSIFIER_PROMPT = """You classify citizen messages to a government scheme assistant.
Respond with JSON: {{"intent": <one of {intents}>, "confidence": <0..1>,
"entities": {{<profile field>: <value>}}, "scheme_id": <id or null>,
"category": <category or null>, "language": <english|hindi|tamil or null>,
"reference": <"scheme" if the user refers to a previously mentioned scheme, else null>}}
Profile fields: {fields}. Known schemes: {schemes}.
The assistant last asked about: {active_question}. Conversation language: {language}."""


class LLMIntentClassifier(BaseIntentClassifier):
    """Classification through an LLM provider; provider outages surface as TransientExternalFailure"""

    def __init__(self, client: BaseLLMClient):
        self.client = client

    async def classify(self,
                       text: str,
                       language: SupportedLanguage,
                       active_question: Optional[str] = None,
                       scheme_names: Optional[Mapping[str, Sequence[str]]] = None) -> IntentCandidate:
        system_prompt = CLASSIFIER_PROMPT.format(
            intents=", ".join(i.value for i in IntentType),
            fields=", ".join(PROFILE_FIELDS),
            schemes=", ".join(sorted(scheme_names or {})),
            active_question=active_question or "nothing",
            language=SupportedLanguage(language).value,
        )
        raw = await self.client.generate(system_prompt, text, response_format={"type": "json_object"})
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning("classifier_unparseable_response")
            return IntentCandidate(intent=IntentType.UNKNOWN, confidence=0.0)
        if not isinstance(data, dict):
            return IntentCandidate(intent=IntentType.UNKNOWN, confidence=0.0)

        entities = {k: v for k, v in (data.get("entities") or {}).items()
                    if k in PROFILE_FIELDS and v is not None}
        scheme_id = data.get("scheme_id")
        if scheme_names is not None and scheme_id not in scheme_names:
            scheme_id = None
        lang = data.get("language")
        try:
            lang = SupportedLanguage(lang) if lang else None
        except ValueError:
            lang = None
        try:
            confidence = min(1.0, max(0.0, float(data.get("confidence", 0.5))))
        except (TypeError, ValueError):
            confidence = 0.5

        return IntentCandidate(
            intent=IntentType.from_label(data.get("intent")),
            confidence=confidence,
            entities=entities,
            scheme_id=scheme_id,
            category=data.get("category"),
            language=lang,
            reference="scheme" if data.get("reference") == "scheme" else None,
        )


def build_classifier(settings, client: Optional[BaseLLMClient] = None) -> BaseIntentClassifier:
    """Classifier backend selected by the INTENT_CLASSIFIER setting"""
    if settings.intent_classifier == "llm":
        from .client import LLMClientFactory
        return LLMIntentClassifier(client or LLMClientFactory.create_from_settings(settings))
    return KeywordIntentClassifier()
