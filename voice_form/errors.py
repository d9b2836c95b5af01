"""
Exceptions du service voice-to-form
"""


class VoiceFormError(Exception):
    """Erreur de base du service"""


class MissingAPIKeyError(VoiceFormError):
    def __init__(self, provider: str, message: str = None):
        self.provider = provider
        super().__init__(message or f"{provider} API key not configured")


class TranscriptionError(VoiceFormError):
    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(message)


class LLMError(VoiceFormError):
    pass


class LLMTimeoutError(LLMError):
    pass


class AnomalyDetectionError(VoiceFormError):
    pass
