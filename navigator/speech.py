# navigator/speech.py
from __future__ import annotations

import json
import logging

from navigator.i18n import speech_lang

logger = logging.getLogger(__name__)


def _js_string(value: str) -> str:
    # json quoting, plus no literal "</" that would end the script tag
    return json.dumps(value).replace("</", "<\\/")


def speech_snippet(text: str, lang: str) -> str:
    """
    Browser-side speech synthesis. Does nothing where the browser lacks the API.
    """
    return f"""
<script>
if ('speechSynthesis' in window) {{
  const u = new SpeechSynthesisUtterance({_js_string(text)});
  u.lang = {_js_string(speech_lang(lang))};
  window.speechSynthesis.speak(u);
}}
</script>
""".strip()


def speak(text: str, lang: str) -> bool:
    """
    Best-effort: returns False (and logs) instead of raising when speech cannot be emitted.
    """
    if not text:
        return False
    try:
        import streamlit.components.v1 as components

        components.html(speech_snippet(text, lang), height=0)
        return True
    except Exception as e:
        logger.info("Text-to-speech unavailable: %s", e)
        return False
