"""
Seed Scheme Catalog
Starter set of central and state schemes loaded into the repository at startup
"""
from typing import Any, Dict, List

from ..config import SupportedLanguage

EN = SupportedLanguage.ENGLISH.value
HI = SupportedLanguage.HINDI.value
TA = SupportedLanguage.TAMIL.value


def _t(english: str, hindi: str, tamil: str) -> Dict[str, str]:
    return {EN: english, HI: hindi, TA: tamil}


AADHAAR = _t("Aadhaar card", "आधार कार्ड", "ஆதார் அட்டை")
BANK_PASSBOOK = _t("Bank passbook", "बैंक पासबुक", "வங்கி கணக்குப் புத்தகம்")
INCOME_CERTIFICATE = _t("Income certificate", "आय प्रमाण पत्र", "வருமானச் சான்றிதழ்")
RESIDENCE_PROOF = _t("Residence proof", "निवास प्रमाण पत्र", "இருப்பிடச் சான்று")

VISIT_CSC = _t("Visit the nearest Common Service Centre",
               "नज़दीकी जन सेवा केंद्र पर जाएँ",
               "அருகிலுள்ள பொது சேவை மையத்திற்குச் செல்லுங்கள்")
SUBMIT_DOCUMENTS = _t("Submit the required documents",
                      "आवश्यक दस्तावेज़ जमा करें",
                      "தேவையான ஆவணங்களைச் சமர்ப்பிக்கவும்")
APPLY_TALUK = _t("Apply at the taluk or tehsil office",
                 "तहसील कार्यालय में आवेदन करें",
                 "வட்டாட்சியர் அலுவலகத்தில் விண்ணப்பிக்கவும்")


GOVERNMENT_SCHEMES: List[Dict[str, Any]] = [
    {
        "id": "pm_kisan",
        "name": _t("PM Kisan Samman Nidhi", "प्रधानमंत्री किसान सम्मान निधि", "பிரதமர் கிசான் சம்மான் நிதி"),
        "description": _t(
            "Annual income support of 6000 rupees to small farmers, paid in three instalments.",
            "छोटे किसानों को तीन किस्तों में सालाना 6000 रुपये की आय सहायता।",
            "சிறு விவசாயிகளுக்கு மூன்று தவணைகளில் ஆண்டுக்கு 6000 ரூபாய் வருமான உதவி.",
        ),
        "category": "agriculture",
        "criteria": [
            {"name": "farmer", "field": "occupation", "kind": "membership", "allowed": ["farmer"]},
            {"name": "small_holding", "field": "land_acres", "kind": "range", "maximum": 5},
        ],
        "application_steps": [
            {"instruction": VISIT_CSC},
            {"instruction": _t("Register on the PM-Kisan portal",
                               "पीएम-किसान पोर्टल पर पंजीकरण करें",
                               "பிஎம்-கிசான் இணையதளத்தில் பதிவு செய்யுங்கள்")},
            {"instruction": SUBMIT_DOCUMENTS},
        ],
        "documents": [
            AADHAAR,
            _t("Land ownership records", "भूमि स्वामित्व दस्तावेज़", "நில உரிமை ஆவணங்கள்"),
            BANK_PASSBOOK,
        ],
        "website": "https://pmkisan.gov.in",
    },
    {
        "id": "pmay",
        "name": _t("Pradhan Mantri Awas Yojana", "प्रधानमंत्री आवास योजना", "பிரதமர் ஆவாஸ் யோஜனா"),
        "description": _t(
            "Assistance to build or buy an affordable house for low income families.",
            "कम आय वाले परिवारों को किफायती घर बनाने या खरीदने के लिए सहायता।",
            "குறைந்த வருமானக் குடும்பங்களுக்கு மலிவு வீடு கட்ட அல்லது வாங்க உதவி.",
        ),
        "category": "housing",
        "criteria": [
            {"name": "low_income", "field": "income", "kind": "range", "maximum": 300000},
            {"name": "bpl_card", "field": "is_bpl", "kind": "custom", "predicate": "is_true"},
        ],
        "application_steps": [
            {"instruction": _t("Apply at the gram panchayat or municipality",
                               "ग्राम पंचायत या नगरपालिका में आवेदन करें",
                               "கிராம பஞ்சாயத்து அல்லது நகராட்சியில் விண்ணப்பிக்கவும்")},
            {"instruction": SUBMIT_DOCUMENTS},
        ],
        "documents": [AADHAAR, INCOME_CERTIFICATE, RESIDENCE_PROOF],
        "website": "https://pmaymis.gov.in",
    },
    {
        "id": "widow_pension",
        "name": _t("Widow Pension Scheme", "विधवा पेंशन योजना", "விதவை ஓய்வூதியத் திட்டம்"),
        "description": _t(
            "Monthly pension for widows from low income households.",
            "कम आय वाले परिवारों की विधवाओं के लिए मासिक पेंशन।",
            "குறைந்த வருமானக் குடும்பங்களின் விதவைகளுக்கு மாதாந்திர ஓய்வூதியம்.",
        ),
        "category": "pension",
        "criteria": [
            {"name": "adult", "field": "age", "kind": "range", "minimum": 18},
            {"name": "low_income", "field": "income", "kind": "range", "maximum": 100000},
            {"name": "widow", "field": "is_widow", "kind": "custom", "predicate": "is_true"},
        ],
        "application_steps": [{"instruction": APPLY_TALUK}, {"instruction": SUBMIT_DOCUMENTS}],
        "documents": [
            _t("Husband's death certificate", "पति का मृत्यु प्रमाण पत्र", "கணவரின் இறப்புச் சான்றிதழ்"),
            AADHAAR,
            INCOME_CERTIFICATE,
        ],
    },
    {
        "id": "disability_pension",
        "name": _t("Disability Pension Scheme", "दिव्यांग पेंशन योजना", "மாற்றுத்திறனாளி ஓய்வூதியத் திட்டம்"),
        "description": _t(
            "Monthly pension for persons with disabilities.",
            "दिव्यांग व्यक्तियों के लिए मासिक पेंशन।",
            "மாற்றுத்திறனாளிகளுக்கு மாதாந்திர ஓய்வூதியம்.",
        ),
        "category": "pension",
        "criteria": [
            {"name": "low_income", "field": "income", "kind": "range", "maximum": 100000},
            {"name": "disability", "field": "is_disabled", "kind": "custom", "predicate": "is_true"},
        ],
        "application_steps": [{"instruction": APPLY_TALUK}, {"instruction": SUBMIT_DOCUMENTS}],
        "documents": [
            _t("Disability certificate (40% or more)", "दिव्यांगता प्रमाण पत्र (40% या अधिक)",
               "மாற்றுத்திறன் சான்றிதழ் (40% அல்லது அதற்கு மேல்)"),
            AADHAAR,
            INCOME_CERTIFICATE,
        ],
    },
    {
        "id": "old_age_pension",
        "name": _t("Old Age Pension Scheme", "वृद्धावस्था पेंशन योजना", "முதியோர் ஓய்வூதியத் திட்டம்"),
        "description": _t(
            "Monthly pension for senior citizens with low income.",
            "कम आय वाले वरिष्ठ नागरिकों के लिए मासिक पेंशन।",
            "குறைந்த வருமானமுள்ள மூத்த குடிமக்களுக்கு மாதாந்திர ஓய்வூதியம்.",
        ),
        "category": "pension",
        "criteria": [
            {"name": "senior", "field": "age", "kind": "range", "minimum": 60},
            {"name": "low_income", "field": "income", "kind": "range", "maximum": 100000},
        ],
        "application_steps": [{"instruction": APPLY_TALUK}, {"instruction": SUBMIT_DOCUMENTS}],
        "documents": [
            AADHAAR,
            _t("Age proof", "आयु प्रमाण पत्र", "வயதுச் சான்று"),
            INCOME_CERTIFICATE,
        ],
    },
    {
        "id": "pmjdy",
        "name": _t("Pradhan Mantri Jan Dhan Yojana", "प्रधानमंत्री जन धन योजना", "பிரதமர் ஜன் தன் யோஜனா"),
        "description": _t(
            "Zero balance bank account with a RuPay card and accident cover.",
            "रुपे कार्ड और दुर्घटना बीमा के साथ शून्य बैलेंस बैंक खाता।",
            "ரூபே அட்டை மற்றும் விபத்துக் காப்பீட்டுடன் பூஜ்ஜிய இருப்பு வங்கிக் கணக்கு.",
        ),
        "category": "financial",
        "criteria": [
            {"name": "min_age", "field": "age", "kind": "range", "minimum": 10},
        ],
        "application_steps": [
            {"instruction": _t("Visit any bank branch", "किसी भी बैंक शाखा में जाएँ", "எந்த வங்கிக் கிளைக்கும் செல்லுங்கள்")},
            {"instruction": _t("Fill the account opening form", "खाता खोलने का फ़ॉर्म भरें", "கணக்குத் தொடக்கப் படிவத்தை நிரப்புங்கள்")},
        ],
        "documents": [AADHAAR],
        "website": "https://pmjdy.gov.in",
    },
    {
        "id": "pmsby",
        "name": _t("Pradhan Mantri Suraksha Bima Yojana", "प्रधानमंत्री सुरक्षा बीमा योजना",
                   "பிரதமர் சுரக்ஷா பீமா யோஜனா"),
        "description": _t(
            "Accident insurance of 2 lakh rupees for a yearly premium of 20 rupees.",
            "20 रुपये वार्षिक प्रीमियम पर 2 लाख रुपये का दुर्घटना बीमा।",
            "ஆண்டுக்கு 20 ரூபாய் கட்டணத்தில் 2 லட்சம் ரூபாய் விபத்துக் காப்பீடு.",
        ),
        "category": "insurance",
        "criteria": [
            {"name": "working_age", "field": "age", "kind": "range", "minimum": 18, "maximum": 70},
        ],
        "application_steps": [
            {"instruction": _t("Apply at your bank", "अपने बैंक में आवेदन करें", "உங்கள் வங்கியில் விண்ணப்பிக்கவும்")},
            {"instruction": _t("Approve the auto-debit", "ऑटो-डेबिट की स्वीकृति दें", "தானியங்கிப் பற்றுக்கு ஒப்புதல் அளியுங்கள்")},
        ],
        "documents": [AADHAAR, BANK_PASSBOOK],
        "website": "https://www.jansuraksha.gov.in",
    },
    {
        "id": "tn_kalaignar_magalir",
        "name": _t("Kalaignar Magalir Urimai Thogai", "कलैगनार मगलिर उरिमै तोगै", "கலைஞர் மகளிர் உரிமைத் தொகை"),
        "description": _t(
            "Monthly assistance of 1000 rupees to women heads of family in Tamil Nadu.",
            "तमिलनाडु में परिवार की मुखिया महिलाओं को 1000 रुपये मासिक सहायता।",
            "தமிழ்நாட்டில் குடும்பத் தலைவிகளுக்கு மாதம் 1000 ரூபாய் உதவி.",
        ),
        "category": "women_welfare",
        "criteria": [
            {"name": "woman", "field": "gender", "kind": "membership", "allowed": ["female", "woman"]},
            {"name": "adult", "field": "age", "kind": "range", "minimum": 21},
            {"name": "low_income", "field": "income", "kind": "range", "maximum": 250000},
            {"name": "resident", "field": "location", "kind": "membership", "allowed": ["tamil nadu"]},
        ],
        "application_steps": [
            {"instruction": _t("Apply at the ration shop camp", "राशन दुकान शिविर में आवेदन करें",
                               "நியாய விலைக் கடை முகாமில் விண்ணப்பிக்கவும்")},
            {"instruction": SUBMIT_DOCUMENTS},
        ],
        "documents": [AADHAAR, _t("Ration card", "राशन कार्ड", "குடும்ப அட்டை"), BANK_PASSBOOK],
    },
    {
        "id": "post_matric_scholarship",
        "name": _t("Post Matric Scholarship", "पोस्ट मैट्रिक छात्रवृत्ति", "மேல்நிலைக் கல்வி உதவித்தொகை"),
        "description": _t(
            "Scholarship covering fees and a monthly allowance for students after class 10.",
            "कक्षा 10 के बाद के छात्रों के लिए शुल्क और मासिक भत्ता देने वाली छात्रवृत्ति।",
            "10 ஆம் வகுப்புக்குப் பிந்தைய மாணவர்களுக்குக் கட்டணம் மற்றும் மாதாந்திர உதவித்தொகை.",
        ),
        "category": "education",
        "criteria": [
            {"name": "student_age", "field": "age", "kind": "range", "minimum": 16, "maximum": 30},
            {"name": "low_income", "field": "income", "kind": "range", "maximum": 250000},
            {"name": "student", "field": "occupation", "kind": "membership", "allowed": ["student"]},
        ],
        "application_steps": [
            {"instruction": _t("Apply on the National Scholarship Portal", "राष्ट्रीय छात्रवृत्ति पोर्टल पर आवेदन करें",
                               "தேசிய உதவித்தொகை இணையதளத்தில் விண்ணப்பிக்கவும்")},
            {"instruction": SUBMIT_DOCUMENTS},
        ],
        "documents": [
            INCOME_CERTIFICATE,
            _t("School or college certificate", "स्कूल या कॉलेज प्रमाण पत्र", "பள்ளி அல்லது கல்லூரிச் சான்றிதழ்"),
        ],
        "website": "https://scholarships.gov.in",
    },
]
