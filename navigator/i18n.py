# navigator/i18n.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class Language:
    code: str
    name: str
    native_name: str
    speech_code: str


LANGUAGES: List[Language] = [
    Language("ta", "Tamil", "தமிழ்", "ta-IN"),
    Language("ml", "Malayalam", "മലയാളം", "ml-IN"),
    Language("te", "Telugu", "తెలుగు", "te-IN"),
    Language("hi", "Hindi", "हिन्दी", "hi-IN"),
    Language("en", "English", "English", "en-US"),
]

DEFAULT_LANGUAGE = "en"

_BY_CODE: Dict[str, Language] = {lang.code: lang for lang in LANGUAGES}


def get_language(code: Optional[str]) -> Optional[Language]:
    return _BY_CODE.get((code or "").strip().lower())


def is_supported(code: Optional[str]) -> bool:
    return get_language(code) is not None


def speech_lang(code: Optional[str]) -> str:
    lang = get_language(code)
    return lang.speech_code if lang else "en-US"


TRANSLATIONS: Dict[str, Dict[str, str]] = {
    "en": {
        "app_title": "Rural Health Navigator",
        "tagline": "Healthcare Access for Rural Communities",
        "choose_language": "Choose your language",
        "welcome": "Welcome",
        "patient_dashboard": "Patient Dashboard",
        "hospital_dashboard": "Hospital Dashboard",
        "quick_actions": "Quick Actions",
        "book_appointment": "Book Appointment",
        "first_aid": "First Aid Guide",
        "my_appointments": "My Appointments",
        "find_doctors": "Find Doctors",
        "emergency": "Emergency",
        "raise_emergency": "Send Emergency Alert",
        "manage_patients": "Manage Patients",
        "manage_doctors": "Manage Doctors",
        "view_appointments": "View Appointments",
        "emergency_alerts": "Emergency Alerts",
        "add_doctor": "Add Doctor",
        "add_patient": "Add Patient",
        "stats": "Today's Statistics",
        "patients": "Patients",
        "doctors": "Doctors",
        "appointments": "Appointments",
        "emergencies": "Emergencies",
        "no_appointments": "No appointments yet.",
        "unknown": "unknown",
        "profile": "My Profile",
        "sign_out": "Sign out",
        "loading": "Loading...",
    },
    "hi": {
        "app_title": "ग्रामीण स्वास्थ्य नेविगेटर",
        "tagline": "ग्रामीण समुदायों के लिए स्वास्थ्य सेवा",
        "choose_language": "अपनी भाषा चुनें",
        "welcome": "स्वागत है",
        "patient_dashboard": "मरीज़ डैशबोर्ड",
        "hospital_dashboard": "अस्पताल डैशबोर्ड",
        "quick_actions": "त्वरित कार्य",
        "book_appointment": "अपॉइंटमेंट बुक करें",
        "first_aid": "प्राथमिक चिकित्सा गाइड",
        "my_appointments": "मेरी अपॉइंटमेंट्स",
        "find_doctors": "डॉक्टर खोजें",
        "emergency": "आपातकाल",
        "raise_emergency": "आपातकालीन अलर्ट भेजें",
        "manage_patients": "मरीज़ों का प्रबंधन",
        "manage_doctors": "डॉक्टरों का प्रबंधन",
        "view_appointments": "अपॉइंटमेंट्स देखें",
        "emergency_alerts": "आपातकालीन अलर्ट",
        "add_doctor": "डॉक्टर जोड़ें",
        "add_patient": "मरीज़ जोड़ें",
        "stats": "आज के आंकड़े",
        "patients": "मरीज़",
        "doctors": "डॉक्टर",
        "appointments": "अपॉइंटमेंट्स",
        "emergencies": "आपातकाल",
        "no_appointments": "अभी कोई अपॉइंटमेंट नहीं।",
        "unknown": "अज्ञात",
        "profile": "मेरी प्रोफ़ाइल",
        "sign_out": "साइन आउट",
        "loading": "लोड हो रहा है...",
    },
    "ta": {
        "welcome": "வணக்கம்",
        "choose_language": "உங்கள் மொழியைத் தேர்ந்தெடுக்கவும்",
        "patient_dashboard": "நோயாளர் டாஷ்போர்டு",
        "hospital_dashboard": "மருத்துவமனை டாஷ்போர்டு",
        "emergency": "அவசரநிலை",
    },
}


def translate(key: str, lang: Optional[str]) -> str:
    """Chosen language, then English, then the key itself."""
    table = TRANSLATIONS.get((lang or "").lower(), {})
    if key in table:
        return table[key]
    return TRANSLATIONS[DEFAULT_LANGUAGE].get(key, key)
