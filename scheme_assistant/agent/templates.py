"""
Localized Response Templates
Every template must exist in every supported language; the table is checked at import
"""
from typing import Any, Dict, List

from ..config import SupportedLanguage
from ..errors import ValidationFailure

EN = SupportedLanguage.ENGLISH
HI = SupportedLanguage.HINDI
TA = SupportedLanguage.TAMIL


TEMPLATES: Dict[str, Dict[SupportedLanguage, str]] = {
    "language_menu": {
        EN: "Welcome! Which language would you like to use: English, Hindi or Tamil?",
        HI: "स्वागत है! आप कौन सी भाषा चुनना चाहेंगे: अंग्रेज़ी, हिंदी या तमिल?",
        TA: "வணக்கம்! எந்த மொழியைப் பயன்படுத்த விரும்புகிறீர்கள்: ஆங்கிலம், இந்தி அல்லது தமிழ்?",
    },
    "language_set": {
        EN: "I will continue in English.",
        HI: "मैं हिंदी में बात करूँगा।",
        TA: "நான் தமிழில் தொடர்கிறேன்.",
    },
    "main_menu": {
        EN: "You can browse schemes, ask about a scheme, or check your eligibility.",
        HI: "आप योजनाएँ देख सकते हैं, किसी योजना के बारे में पूछ सकते हैं, या अपनी पात्रता जाँच सकते हैं।",
        TA: "நீங்கள் திட்டங்களைப் பார்க்கலாம், ஒரு திட்டத்தைப் பற்றி கேட்கலாம், அல்லது உங்கள் தகுதியைச் சரிபார்க்கலாம்.",
    },
    "help": {
        EN: "I did not quite follow that. You can say 'show schemes', 'check eligibility', 'go back' or 'end'.",
        HI: "मैं समझ नहीं पाया। आप 'योजनाएँ दिखाओ', 'पात्रता जाँचो', 'वापस जाओ' या 'समाप्त' कह सकते हैं।",
        TA: "எனக்குப் புரியவில்லை. 'திட்டங்களைக் காட்டு', 'தகுதி சரிபார்', 'பின் செல்' அல்லது 'முடி' என்று சொல்லலாம்.",
    },
    "guidance": {
        EN: "Are you still there? {hint}",
        HI: "क्या आप अभी भी हैं? {hint}",
        TA: "நீங்கள் இன்னும் இருக்கிறீர்களா? {hint}",
    },
    "low_confidence": {
        EN: "I could not hear you clearly. Please repeat, or type your message instead.",
        HI: "मुझे साफ़ सुनाई नहीं दिया। कृपया दोहराएँ, या अपना संदेश टाइप करें।",
        TA: "எனக்குத் தெளிவாகக் கேட்கவில்லை. தயவுசெய்து மீண்டும் சொல்லுங்கள், அல்லது தட்டச்சு செய்யுங்கள்.",
    },
    "still_working": {
        EN: "Still working on it, one moment please.",
        HI: "अभी काम चल रहा है, कृपया एक क्षण रुकें।",
        TA: "இன்னும் செயல்படுகிறது, ஒரு நிமிடம் காத்திருங்கள்.",
    },
    "scheme_list": {
        EN: "Here are some schemes: {names}.",
        HI: "ये कुछ योजनाएँ हैं: {names}।",
        TA: "சில திட்டங்கள்: {names}.",
    },
    "scheme_list_empty": {
        EN: "I could not find any schemes in that category.",
        HI: "उस श्रेणी में कोई योजना नहीं मिली।",
        TA: "அந்த வகையில் எந்தத் திட்டமும் கிடைக்கவில்லை.",
    },
    "scheme_details": {
        EN: "{name}: {description}",
        HI: "{name}: {description}",
        TA: "{name}: {description}",
    },
    "scheme_deadline": {
        EN: "Apply before {deadline}.",
        HI: "{deadline} से पहले आवेदन करें।",
        TA: "{deadline} க்கு முன் விண்ணப்பிக்கவும்.",
    },
    "which_scheme": {
        EN: "Which scheme are you interested in?",
        HI: "आप किस योजना में रुचि रखते हैं?",
        TA: "நீங்கள் எந்தத் திட்டத்தில் ஆர்வமாக உள்ளீர்கள்?",
    },
    "ask_field": {
        EN: "To check {scheme}, I need your {field}. Could you tell me?",
        HI: "{scheme} की जाँच के लिए मुझे आपकी {field} चाहिए। बताएँगे?",
        TA: "{scheme} சரிபார்க்க உங்கள் {field} தேவை. சொல்ல முடியுமா?",
    },
    "ask_flag": {
        EN: "To check {scheme}, please tell me: {field}? (yes or no)",
        HI: "{scheme} की जाँच के लिए बताइए: {field}? (हाँ या नहीं)",
        TA: "{scheme} சரிபார்க்க சொல்லுங்கள்: {field}? (ஆம் அல்லது இல்லை)",
    },
    "eligible": {
        EN: "Good news, you are eligible for {scheme}.",
        HI: "अच्छी खबर, आप {scheme} के लिए पात्र हैं।",
        TA: "நல்ல செய்தி, நீங்கள் {scheme} க்குத் தகுதியானவர்.",
    },
    "ineligible": {
        EN: "You do not meet the conditions for {scheme}.",
        HI: "आप {scheme} की शर्तें पूरी नहीं करते।",
        TA: "நீங்கள் {scheme} நிபந்தனைகளைப் பூர்த்தி செய்யவில்லை.",
    },
    "alternatives": {
        EN: "You may qualify for: {names}.",
        HI: "आप इनके लिए पात्र हो सकते हैं: {names}।",
        TA: "நீங்கள் இவற்றுக்குத் தகுதி பெறலாம்: {names}.",
    },
    "no_alternatives": {
        EN: "I could not find another scheme that fits right now.",
        HI: "अभी कोई दूसरी उपयुक्त योजना नहीं मिली।",
        TA: "இப்போது பொருந்தும் வேறு திட்டம் எதுவும் கிடைக்கவில்லை.",
    },
    "criterion_range_met": {
        EN: "Your {field} ({value}) is within the allowed range of {bounds}.",
        HI: "आपकी {field} ({value}) अनुमत सीमा {bounds} के भीतर है।",
        TA: "உங்கள் {field} ({value}) அனுமதிக்கப்பட்ட வரம்பு {bounds} க்குள் உள்ளது.",
    },
    "criterion_range_unmet": {
        EN: "Your {field} ({value}) is outside the allowed range of {bounds}.",
        HI: "आपकी {field} ({value}) अनुमत सीमा {bounds} से बाहर है।",
        TA: "உங்கள் {field} ({value}) அனுமதிக்கப்பட்ட வரம்பு {bounds} க்கு வெளியே உள்ளது.",
    },
    "criterion_member_met": {
        EN: "Your {field} ({value}) is one of the accepted values.",
        HI: "आपकी {field} ({value}) स्वीकृत मानों में से है।",
        TA: "உங்கள் {field} ({value}) ஏற்கப்பட்ட மதிப்புகளில் ஒன்று.",
    },
    "criterion_member_unmet": {
        EN: "Your {field} ({value}) is not one of: {allowed}.",
        HI: "आपकी {field} ({value}) इनमें से नहीं है: {allowed}।",
        TA: "உங்கள் {field} ({value}) இவற்றில் ஒன்றல்ல: {allowed}.",
    },
    "criterion_custom_met": {
        EN: "The condition on {field} is satisfied.",
        HI: "{field} की शर्त पूरी होती है।",
        TA: "{field} நிபந்தனை பூர்த்தியாகிறது.",
    },
    "criterion_custom_unmet": {
        EN: "The condition on {field} is not satisfied.",
        HI: "{field} की शर्त पूरी नहीं होती।",
        TA: "{field} நிபந்தனை பூர்த்தியாகவில்லை.",
    },
    "criterion_missing": {
        EN: "I still need your {field}.",
        HI: "मुझे अभी भी आपकी {field} चाहिए।",
        TA: "எனக்கு இன்னும் உங்கள் {field} தேவை.",
    },
    "open_to_all": {
        EN: "This scheme has no eligibility conditions.",
        HI: "इस योजना की कोई पात्रता शर्त नहीं है।",
        TA: "இந்தத் திட்டத்திற்கு தகுதி நிபந்தனைகள் இல்லை.",
    },
    "application_steps": {
        EN: "How to apply for {scheme}: {steps}",
        HI: "{scheme} के लिए आवेदन कैसे करें: {steps}",
        TA: "{scheme} க்கு விண்ணப்பிக்கும் முறை: {steps}",
    },
    "documents": {
        EN: "Keep these documents ready: {documents}.",
        HI: "ये दस्तावेज़ तैयार रखें: {documents}।",
        TA: "இந்த ஆவணங்களைத் தயாராக வைத்திருங்கள்: {documents}.",
    },
    "confirm_end": {
        EN: "Do you want to end this conversation? (yes or no)",
        HI: "क्या आप यह बातचीत समाप्त करना चाहते हैं? (हाँ या नहीं)",
        TA: "இந்த உரையாடலை முடிக்க விரும்புகிறீர்களா? (ஆம் அல்லது இல்லை)",
    },
    "confirm_submit": {
        EN: "Shall I submit the details you gave me for {scheme}? (yes or no)",
        HI: "क्या मैं {scheme} के लिए आपकी दी गई जानकारी जमा करूँ? (हाँ या नहीं)",
        TA: "{scheme} க்கு நீங்கள் கொடுத்த விவரங்களைச் சமர்ப்பிக்கட்டுமா? (ஆம் அல்லது இல்லை)",
    },
    "confirm_submit_general": {
        EN: "Shall I submit the details you gave me? (yes or no)",
        HI: "क्या मैं आपकी दी गई जानकारी जमा करूँ? (हाँ या नहीं)",
        TA: "நீங்கள் கொடுத்த விவரங்களைச் சமர்ப்பிக்கட்டுமா? (ஆம் அல்லது இல்லை)",
    },
    "confirm_cancelled": {
        EN: "Okay, nothing was changed.",
        HI: "ठीक है, कुछ नहीं बदला गया।",
        TA: "சரி, எதுவும் மாற்றப்படவில்லை.",
    },
    "profile_submitted": {
        EN: "Your details have been submitted.",
        HI: "आपकी जानकारी जमा कर दी गई है।",
        TA: "உங்கள் விவரங்கள் சமர்ப்பிக்கப்பட்டன.",
    },
    "profile_recorded": {
        EN: "Thank you, I have noted that.",
        HI: "धन्यवाद, मैंने नोट कर लिया है।",
        TA: "நன்றி, குறித்துக்கொண்டேன்.",
    },
    "went_back": {
        EN: "Going back.",
        HI: "वापस जा रहे हैं।",
        TA: "பின் செல்கிறோம்.",
    },
    "goodbye": {
        EN: "Thank you for using the scheme assistant. Goodbye!",
        HI: "योजना सहायक का उपयोग करने के लिए धन्यवाद। नमस्ते!",
        TA: "திட்ட உதவியாளரைப் பயன்படுத்தியதற்கு நன்றி. வணக்கம்!",
    },
    "session_closed": {
        EN: "This conversation has ended. Please start a new session.",
        HI: "यह बातचीत समाप्त हो चुकी है। कृपया नया सत्र शुरू करें।",
        TA: "இந்த உரையாடல் முடிந்தது. புதிய அமர்வைத் தொடங்குங்கள்.",
    },
    "summary": {
        EN: "So far: {facts}.",
        HI: "अब तक: {facts}।",
        TA: "இதுவரை: {facts}.",
    },
    "summary_empty": {
        EN: "So far we have not collected any details.",
        HI: "अब तक कोई जानकारी नहीं ली गई है।",
        TA: "இதுவரை எந்த விவரமும் சேகரிக்கப்படவில்லை.",
    },
    "ambiguous_reference": {
        EN: "I am not sure what you are referring to. Could you name the scheme or detail?",
        HI: "मुझे पक्का नहीं पता कि आप किसकी बात कर रहे हैं। क्या आप योजना या जानकारी का नाम बता सकते हैं?",
        TA: "நீங்கள் எதைக் குறிப்பிடுகிறீர்கள் என்று உறுதியாகத் தெரியவில்லை. திட்டத்தின் அல்லது விவரத்தின் பெயரைச் சொல்ல முடியுமா?",
    },
    "error.transient_external_failure": {
        EN: "A service I depend on is not responding. Please try again in a little while.",
        HI: "एक आवश्यक सेवा जवाब नहीं दे रही है। कृपया थोड़ी देर बाद फिर से प्रयास करें।",
        TA: "தேவையான ஒரு சேவை பதிலளிக்கவில்லை. சிறிது நேரம் கழித்து மீண்டும் முயற்சிக்கவும்.",
    },
    "error.validation_failure": {
        EN: "Some information was incomplete, so it was not saved. Please check it and try again.",
        HI: "कुछ जानकारी अधूरी थी, इसलिए सहेजी नहीं गई। कृपया जाँचकर फिर से प्रयास करें।",
        TA: "சில தகவல்கள் முழுமையில்லை, எனவே சேமிக்கப்படவில்லை. சரிபார்த்து மீண்டும் முயற்சிக்கவும்.",
    },
    "error.not_found": {
        EN: "I could not find that. Please check the name and try again.",
        HI: "वह नहीं मिला। कृपया नाम जाँचकर फिर से प्रयास करें।",
        TA: "அது கிடைக்கவில்லை. பெயரைச் சரிபார்த்து மீண்டும் முயற்சிக்கவும்.",
    },
    "error.expired": {
        EN: "Your session has expired. Please start a new session.",
        HI: "आपका सत्र समाप्त हो गया है। कृपया नया सत्र शुरू करें।",
        TA: "உங்கள் அமர்வு காலாவதியானது. புதிய அமர்வைத் தொடங்குங்கள்.",
    },
    "error.concurrency_conflict": {
        EN: "Your last message was still being processed. Please send it again.",
        HI: "आपका पिछला संदेश अभी संसाधित हो रहा था। कृपया फिर से भेजें।",
        TA: "உங்கள் முந்தைய செய்தி இன்னும் செயலாக்கத்தில் இருந்தது. மீண்டும் அனுப்பவும்.",
    },
    "error.ambiguous_reference": {
        EN: "I am not sure what you are referring to. Could you name it?",
        HI: "मुझे पक्का नहीं पता कि आप किसकी बात कर रहे हैं। क्या आप नाम बता सकते हैं?",
        TA: "நீங்கள் எதைக் குறிப்பிடுகிறீர்கள் என்று தெரியவில்லை. பெயரைச் சொல்ல முடியுமா?",
    },
    "error.unexpected": {
        EN: "Something went wrong on our side. Please try again.",
        HI: "हमारी ओर से कुछ गड़बड़ हुई। कृपया फिर से प्रयास करें।",
        TA: "எங்கள் பக்கத்தில் ஏதோ தவறு ஏற்பட்டது. மீண்டும் முயற்சிக்கவும்.",
    },
    "next_action.transient_external_failure": {
        EN: "Try again in a minute.",
        HI: "एक मिनट बाद फिर प्रयास करें।",
        TA: "ஒரு நிமிடம் கழித்து முயற்சிக்கவும்.",
    },
    "next_action.validation_failure": {
        EN: "Correct the highlighted details.",
        HI: "बताई गई जानकारी सुधारें।",
        TA: "குறிப்பிட்ட விவரங்களைச் சரிசெய்யவும்.",
    },
    "next_action.not_found": {
        EN: "Say 'show schemes' to see what is available.",
        HI: "उपलब्ध योजनाएँ देखने के लिए 'योजनाएँ दिखाओ' कहें।",
        TA: "கிடைப்பவற்றைக் காண 'திட்டங்களைக் காட்டு' என்று சொல்லுங்கள்.",
    },
    "next_action.expired": {
        EN: "Start a new session.",
        HI: "नया सत्र शुरू करें।",
        TA: "புதிய அமர்வைத் தொடங்குங்கள்.",
    },
    "next_action.concurrency_conflict": {
        EN: "Send your message again.",
        HI: "अपना संदेश फिर से भेजें।",
        TA: "உங்கள் செய்தியை மீண்டும் அனுப்புங்கள்.",
    },
    "next_action.ambiguous_reference": {
        EN: "Name the scheme you mean.",
        HI: "जिस योजना की बात है उसका नाम बताएँ।",
        TA: "நீங்கள் குறிப்பிடும் திட்டத்தின் பெயரைச் சொல்லுங்கள்.",
    },
    "next_action.unexpected": {
        EN: "Try again.",
        HI: "फिर से प्रयास करें।",
        TA: "மீண்டும் முயற்சிக்கவும்.",
    },
}

FIELD_LABELS: Dict[str, Dict[SupportedLanguage, str]] = {
    "age": {EN: "age", HI: "आयु", TA: "வயது"},
    "income": {EN: "annual income", HI: "वार्षिक आय", TA: "ஆண்டு வருமானம்"},
    "location": {EN: "state of residence", HI: "निवास राज्य", TA: "வசிக்கும் மாநிலம்"},
    "occupation": {EN: "occupation", HI: "व्यवसाय", TA: "தொழில்"},
    "gender": {EN: "gender", HI: "लिंग", TA: "பாலினம்"},
    "is_widow": {EN: "are you a widow", HI: "क्या आप विधवा हैं", TA: "நீங்கள் விதவையா"},
    "is_disabled": {EN: "do you have a disability", HI: "क्या आप दिव्यांग हैं", TA: "உங்களுக்கு மாற்றுத்திறன் உள்ளதா"},
    "is_bpl": {EN: "do you hold a BPL card", HI: "क्या आपके पास बीपीएल कार्ड है", TA: "உங்களிடம் BPL அட்டை உள்ளதா"},
    "land_acres": {EN: "land holding in acres", HI: "एकड़ में भूमि", TA: "ஏக்கரில் நிலம்"},
    "caste_category": {EN: "social category", HI: "सामाजिक वर्ग", TA: "சமூகப் பிரிவு"},
}

SUGGESTIONS: Dict[str, Dict[SupportedLanguage, List[str]]] = {
    "language_selection": {
        EN: ["English", "Hindi", "Tamil"],
        HI: ["English", "हिंदी", "தமிழ்"],
        TA: ["English", "हिंदी", "தமிழ்"],
    },
    "main_menu": {
        EN: ["Show schemes", "Check eligibility", "Help"],
        HI: ["योजनाएँ दिखाओ", "पात्रता जाँचो", "मदद"],
        TA: ["திட்டங்களைக் காட்டு", "தகுதி சரிபார்", "உதவி"],
    },
    "scheme_browsing": {
        EN: ["Tell me about a scheme", "Check eligibility", "Go back"],
        HI: ["योजना के बारे में बताओ", "पात्रता जाँचो", "वापस जाओ"],
        TA: ["திட்டத்தைப் பற்றி சொல்", "தகுதி சரிபார்", "பின் செல்"],
    },
    "scheme_details": {
        EN: ["Check eligibility", "How to apply", "Go back"],
        HI: ["पात्रता जाँचो", "आवेदन कैसे करें", "वापस जाओ"],
        TA: ["தகுதி சரிபார்", "எப்படி விண்ணப்பிப்பது", "பின் செல்"],
    },
    "eligibility_check": {
        EN: ["How to apply", "Show schemes", "Go back"],
        HI: ["आवेदन कैसे करें", "योजनाएँ दिखाओ", "वापस जाओ"],
        TA: ["எப்படி விண்ணப்பிப்பது", "திட்டங்களைக் காட்டு", "பின் செல்"],
    },
    "application_guide": {
        EN: ["Submit my details", "Show schemes", "Go back"],
        HI: ["मेरी जानकारी जमा करो", "योजनाएँ दिखाओ", "वापस जाओ"],
        TA: ["என் விவரங்களைச் சமர்ப்பி", "திட்டங்களைக் காட்டு", "பின் செல்"],
    },
    "confirmation": {
        EN: ["Yes", "No"],
        HI: ["हाँ", "नहीं"],
        TA: ["ஆம்", "இல்லை"],
    },
    "ended": {
        EN: [],
        HI: [],
        TA: [],
    },
}


def validate_complete(table: Dict[str, Dict[SupportedLanguage, Any]], name: str):
    """Fail fast if any entry lacks a supported language"""
    expected = set(SupportedLanguage)
    for key, entry in table.items():
        missing = expected - set(entry)
        if missing:
            raise ValidationFailure(
                f"{name}[{key}] is missing languages: {sorted(m.value for m in missing)}",
                field=key
            )


validate_complete(TEMPLATES, "TEMPLATES")
validate_complete(FIELD_LABELS, "FIELD_LABELS")
validate_complete(SUGGESTIONS, "SUGGESTIONS")


def _lang(language) -> SupportedLanguage:
    if isinstance(language, SupportedLanguage):
        return language
    try:
        return SupportedLanguage(language)
    except ValueError:
        return SupportedLanguage.ENGLISH


def render(key: str, language, **values: Any) -> str:
    """Render a template in the given language"""
    return TEMPLATES[key][_lang(language)].format(**values)


def field_label(field: str, language) -> str:
    labels = FIELD_LABELS.get(field)
    if labels is None:
        return field.replace("_", " ")
    return labels[_lang(language)]


def suggestions_for(state: str, language) -> List[str]:
    entry = SUGGESTIONS.get(state)
    if entry is None:
        return []
    return list(entry[_lang(language)])
