"""
Greeting generator (Google Gemini) and dashboard motivational quotes.
"""

import logging
import random

from django.conf import settings
from google import genai
from google.genai import types

logger = logging.getLogger(__name__)

GREETING_MAX_OUTPUT_TOKENS = 512

GREETING_PROMPT = """Anda adalah ahli kartu ucapan. Buat pesan ucapan yang personal \
berdasarkan acara, penerima, dan nada yang diberikan. Jawab hanya dengan teks ucapannya.

Acara: {occasion}
Penerima: {recipient}
Nada: {tone}

Ucapan:"""

MOTIVATIONAL_QUOTES = [
    "Setiap paket yang terkirim adalah senyum yang kau antarkan. Semangat!",
    "Hari ini adalah kesempatan baru untuk menjadi kurir terbaik!",
    "Kecepatan dan ketepatan adalah kunci kesuksesanmu. Terus bergerak!",
    "Jangan biarkan rintangan menghentikanmu. Kamu luar biasa!",
    "Terima kasih atas dedikasimu. Setiap langkahmu berarti!",
]


class GreetingError(ValueError):
    pass


def random_quote() -> str:
    return random.choice(MOTIVATIONAL_QUOTES)


def generate_greeting(occasion: str, recipient: str, tone: str) -> str:
    """
    Generate a personalized greeting with Gemini.

    Raises:
        GreetingError: missing API key, API failure or empty response
    """
    api_key = getattr(settings, 'GEMINI_API_KEY', '')
    if not api_key:
        raise GreetingError("Layanan AI belum dikonfigurasi.")

    for label, value in (('Acara', occasion), ('Penerima', recipient), ('Nada', tone)):
        if not (value or '').strip():
            raise GreetingError(f"{label} wajib diisi.")

    client = genai.Client(api_key=api_key)
    try:
        response = client.models.generate_content(
            model=settings.GEMINI_MODEL,
            contents=GREETING_PROMPT.format(
                occasion=occasion.strip(),
                recipient=recipient.strip(),
                tone=tone.strip(),
            ),
            config=types.GenerateContentConfig(
                temperature=0.8,
                max_output_tokens=GREETING_MAX_OUTPUT_TOKENS,
            ),
        )
    except Exception as e:
        logger.error(f"[GREETING] Gemini call failed: {e}")
        raise GreetingError(f"Gagal membuat ucapan: {e}")

    if not response.text or not response.text.strip():
        logger.warning("[GREETING] Empty response from Gemini")
        raise GreetingError("Gagal membuat ucapan: respons AI kosong.")
    return response.text.strip()
