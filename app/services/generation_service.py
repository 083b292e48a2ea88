import os
import logging
import google.generativeai as genai

logger = logging.getLogger(__name__)

MODEL_NAME = "gemini-flash-latest"
GENERATION_CONFIG = {
    "temperature": 0.7,
    "max_output_tokens": 1500,
}


class LanguageModelError(Exception):
    pass


def configure_gemini():
    api_key = os.getenv("GOOGLE_GEMINI_API_KEY")
    if not api_key:
        raise LanguageModelError("Gemini API key not configured")
    genai.configure(api_key=api_key)


async def generate_assistant_reply(system_prompt: str, user_prompt: str) -> str:
    """Sends the composed prompt to Gemini and returns the reply text."""
    configure_gemini()

    model = genai.GenerativeModel(
        MODEL_NAME,
        system_instruction=system_prompt,
        generation_config=GENERATION_CONFIG,
    )
    logger.info("Calling Gemini API...")
    try:
        response = await model.generate_content_async(user_prompt)
        reply = response.text
    except Exception as e:
        logger.error(f"Gemini API error: {e}", exc_info=True)
        raise LanguageModelError(f"Gemini API error: {e}") from e

    if not reply or not reply.strip():
        raise LanguageModelError("Gemini API returned an empty response")
    logger.info("AI response generated successfully")
    return reply.strip()
