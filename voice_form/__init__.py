"""Voice to Form : dictée -> transcription -> extraction LLM -> formulaire"""

__version__ = "1.0.0"
