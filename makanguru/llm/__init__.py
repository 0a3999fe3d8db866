"""
LLM integration layer.

Responsibilities:
- Hold provider configuration, credentials and fallback model lists.
- Build persona prompts from the user query and candidate restaurants.
- Call Gemini or Groq and classify every outcome into a ProviderResult.
- Retry, fall back across models, and degrade to a persona fallback message.
"""
