"""
Catalogue des démos (formulaires disponibles)
"""

from typing import Dict, List

from .schemas import DemoConfig, FormField


DEFAULT_DEMO_ID = "medical-intake"


class UnknownDemoError(KeyError):
    def __init__(self, demo_id: str):
        self.demo_id = demo_id
        super().__init__(demo_id)

    def __str__(self) -> str:
        return f"Unknown demo: {self.demo_id}"


MEDICAL_CONTEXT = (
    "You are an expert medical transcriptionist and clinical documentation specialist. "
    "Your job is to extract structured patient information from a doctor's natural speech, "
    "understanding both explicit statements and implicit contextual information."
)

SUBSTATION_CONTEXT = (
    "You are an experienced electrical substation inspector. Your job is to turn an "
    "inspector's spoken walk-through into a routine inspection report, keeping the "
    "inspector's observations factual and concise."
)


MEDICAL_INTAKE = DemoConfig(
    id="medical-intake",
    title="Medical Intake",
    description="Patient information capture",
    icon="🏥",
    form_title="Patient Intake Form",
    submit_button_text="Submit Patient Form",
    context=MEDICAL_CONTEXT,
    fields=[
        FormField(
            name="patientName", label="Patient Name *", placeholder="John Doe",
            type="text", required=True,
            semantic_hint="full name (\"patient is...\", \"seeing [name]\")",
        ),
        FormField(
            name="age", label="Age *", placeholder="35", type="text", required=True,
            semantic_hint="number only (\"28 years old\" -> \"28\")",
        ),
        FormField(
            name="gender", label="Gender", placeholder="Male/Female/Other", type="text",
            semantic_hint="male or female, inferred from pronouns (he/him=male, she/her=female) or titles (Mr./Ms.)",
        ),
        FormField(
            name="chiefComplaint", label="Chief Complaint *", placeholder="Headache",
            type="text", required=True,
            semantic_hint="main problem, the primary reason for the visit",
        ),
        FormField(
            name="symptoms", label="Symptoms", placeholder="Describe symptoms...",
            type="textarea",
            semantic_hint="all symptoms and clinical observations, with duration and severity",
        ),
        FormField(
            name="medicalHistory", label="Medical History", placeholder="Past medical conditions...",
            type="textarea",
            semantic_hint="past conditions, surgeries, chronic diseases (\"history of...\")",
        ),
        FormField(
            name="allergies", label="Allergies", placeholder="Known allergies...",
            type="textarea",
            semantic_hint="allergies (\"allergic to...\")",
        ),
        FormField(
            name="currentMedications", label="Current Medications",
            placeholder="Current medications...", type="textarea",
            semantic_hint="current medications (\"takes...\", \"on...\")",
        ),
    ],
)


SUBSTATION_INSPECTION = DemoConfig(
    id="substation-inspection",
    title="Substation Inspection",
    description="Routine inspection form",
    icon="⚡",
    form_title="Substation Routine Inspection Form",
    submit_button_text="Submit Inspection Report",
    context=SUBSTATION_CONTEXT,
    fields=[
        FormField(name="inspectorName", label="Inspector Name *", placeholder="John Smith",
                  type="text", required=True),
        FormField(name="dateTime", label="Date and Time *", placeholder="2025-10-10 14:30",
                  type="text", required=True,
                  semantic_hint="date and time of the inspection, formatted YYYY-MM-DD HH:MM"),
        FormField(name="substationName", label="Substation Name/ID *", placeholder="Station Alpha-01",
                  type="text", required=True),
        FormField(name="weatherConditions", label="Weather Conditions",
                  placeholder="Clear, temperature 72°F", type="text"),
        FormField(name="generalImpression", label="General Visual Impression",
                  placeholder="Overall site condition...", type="textarea"),
        FormField(name="switchgearCondition", label="Switchgear and Transformers",
                  placeholder="Condition of equipment...", type="textarea"),
        FormField(name="leaksRustOverheating", label="Oil Leaks, Rust, or Overheating",
                  placeholder="Signs observed...", type="textarea"),
        FormField(name="safetyEquipment", label="Safety Equipment and Signage",
                  placeholder="Status of safety equipment...", type="textarea"),
        FormField(name="cleanlinessVegetation", label="Cleanliness and Vegetation Control",
                  placeholder="Site cleanliness status...", type="textarea"),
        FormField(name="securityStatus", label="Security Status",
                  placeholder="Fences, locks, access control...", type="textarea"),
        FormField(name="unusualObservations", label="Unusual Noises, Smells, or Vibrations",
                  placeholder="Any abnormal observations...", type="textarea"),
        FormField(name="imageAnomalyDetection", label="Image Anomaly Detection",
                  placeholder="Upload inspection photos...", type="anomaly-detector"),
        FormField(name="maintenanceActions", label="Maintenance/Corrective Actions",
                  placeholder="Actions performed...", type="textarea"),
        FormField(name="additionalRemarks", label="Additional Observations",
                  placeholder="Other remarks...", type="textarea"),
        FormField(name="recommendations", label="Recommendations",
                  placeholder="Follow-up or repair recommendations...", type="textarea"),
        FormField(name="inspectorSignature", label="Inspector Signature/Initials",
                  placeholder="J.S.", type="text",
                  semantic_hint="initials only"),
    ],
)


DEMOS: List[DemoConfig] = [MEDICAL_INTAKE, SUBSTATION_INSPECTION]

_DEMOS_BY_ID: Dict[str, DemoConfig] = {demo.id: demo for demo in DEMOS}


def get_demo(demo_id: str) -> DemoConfig:
    try:
        return _DEMOS_BY_ID[demo_id]
    except KeyError:
        raise UnknownDemoError(demo_id) from None
