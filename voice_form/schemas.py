from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional


FieldType = Literal["text", "textarea", "anomaly-detector"]
STTProvider = Literal["elevenlabs", "deepgram", "gemini"]


# ══════════════════════════════════════════════════════════════
# FORMULAIRES
# ══════════════════════════════════════════════════════════════

class FormField(BaseModel):
    """Définition d'un champ de formulaire"""
    name: str
    label: str
    placeholder: str = ""
    type: FieldType = "text"
    required: bool = False
    semantic_hint: Optional[str] = None


class FormSchema(BaseModel):
    fields: List[FormField]


class DemoConfig(BaseModel):
    """Une démo = un formulaire + le contexte donné au LLM"""
    id: str
    title: str
    description: str
    icon: str
    form_title: str
    submit_button_text: str
    context: str = "You are an expert information extraction engine."
    fields: List[FormField]

    def default_values(self) -> Dict[str, str]:
        return {field.name: "" for field in self.fields}

    def extractable_fields(self) -> List[FormField]:
        # Les champs image sont remplis par la détection, pas par la voix
        return [field for field in self.fields if field.type != "anomaly-detector"]


# ══════════════════════════════════════════════════════════════
# VOICE-TO-FORM / EXTRACTION
# ══════════════════════════════════════════════════════════════

class VoiceToFormResponse(BaseModel):
    """Résultat {data, error} renvoyé à l'interface"""
    data: Dict[str, str] = Field(default_factory=dict)
    error: Optional[str] = None
    success: bool = True
    transcript: Optional[str] = None
    stt_provider: Optional[STTProvider] = None


class ExtractionRequest(BaseModel):
    """Requête pour extraire des données d'un texte"""
    text: str
    demo_id: Optional[str] = None
    form: Optional[FormSchema] = None
    google_key: Optional[str] = None


class ExtractionResponse(BaseModel):
    data: Dict[str, str]
    success: bool = True


class TranscriptionResponse(BaseModel):
    text: str
    provider: STTProvider
    duration_s: float


# ══════════════════════════════════════════════════════════════
# DÉTECTION D'ANOMALIES
# ══════════════════════════════════════════════════════════════

class DetectedObject(BaseModel):
    """Boîte englobante normalisée (0..1)"""
    x_min: float
    y_min: float
    x_max: float
    y_max: float


class UsageInfo(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0
    prefill_time_ms: float = 0
    decode_time_ms: float = 0
    ttft_ms: float = 0


class AnomalyDetectionResult(BaseModel):
    objects: List[DetectedObject] = Field(default_factory=list)
    finish_reason: str = ""
    usage_info: Optional[UsageInfo] = None


class DetectAnomalyRequest(BaseModel):
    image: str = Field(description="Data URI (data:image/...;base64,...) ou URL publique")
    prompt: str = "anomaly"
    fal_key: Optional[str] = None
    # Taille de l'image en pixels : active les boxes de la réponse
    width: Optional[int] = None
    height: Optional[int] = None

    class Config:
        json_schema_extra = {
            "example": {
                "image": "https://example.com/substation.jpg",
                "prompt": "anomaly"
            }
        }


class DetectAnomalyResponse(BaseModel):
    data: Optional[AnomalyDetectionResult] = None
    error: Optional[str] = None
    summary: Optional[str] = None
    boxes: Optional[List[Dict[str, Any]]] = None


# ══════════════════════════════════════════════════════════════
# AUTHENTIFICATION
# ══════════════════════════════════════════════════════════════

class AuthRequest(BaseModel):
    password: str

