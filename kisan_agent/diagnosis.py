"""
Plant-disease analysis pipeline.

A vision model classifies the image into structured findings, a larger text
model writes the treatment narrative, and two fallback tiers make sure every
request ends in a well-formed DiseaseAnalysis.
"""
import json
import re
from datetime import datetime, timezone
from typing import Any, Dict

from loguru import logger
from pydantic import ValidationError

from kisan_agent.completion import CompletionService, text_message, vision_message
from kisan_agent.config import ModelSpec
from kisan_agent.errors import (
    AnalysisParseError,
    AnalysisValidationError,
    EmptyReplyError,
    KisanError,
    ModelCapabilityError,
)
from kisan_agent.languages import language_name
from kisan_agent.schemas import DiseaseAnalysis, VisionFindings

CLASSIFY_TEMPERATURE = 0.3
NARRATIVE_TEMPERATURE = 0.7
MAX_TOKENS = 1024

CLASSIFY_PROMPT = """You are an expert plant pathologist and agricultural specialist in India. Analyze this plant/leaf image and identify any diseases or health issues.

IMPORTANT: Respond ONLY with valid JSON (no other text) in this format:
{
  "disease": "Disease name or 'Healthy Plant'",
  "confidence": 0.85,
  "description": "Brief description of the condition",
  "symptoms": ["symptom 1", "symptom 2", "symptom 3"],
  "treatment": ["treatment 1", "treatment 2"],
  "prevention": ["prevention 1", "prevention 2"]
}

Be specific and accurate based on what you observe."""

NARRATIVE_SYSTEM_PROMPT = """You are an expert agricultural advisor from India's Ministry of Agriculture. Provide practical advice for Indian farmers in {language}.

Be specific with:
- Cost estimates in ₹
- Local remedy options
- Government schemes applicable
- Day-by-day action plan"""

NARRATIVE_USER_PROMPT = """Disease: {disease}
Symptoms: {symptoms}

Provide practical treatment and prevention advice suitable for Karnataka farmers."""

GUIDANCE_SYSTEM_PROMPT = (
    "You are a helpful agricultural AI assistant providing guidance to Indian farmers. "
    "Respond in {language}."
)

GUIDANCE_USER_PROMPT = """A farmer wants to diagnose their plant disease. Since direct image analysis is temporarily unavailable, provide general guidance on:
1. How to identify common plant diseases in Karnataka
2. Common symptoms to look for
3. When to contact an agricultural expert

Keep it simple and practical for farmers."""

KVK_REFERRAL = (
    "Please try uploading your image again or contact your local Krishi Vigyan Kendra (KVK) "
    "for expert assistance."
)

_JSON_SPAN = re.compile(r"\{[\s\S]*\}")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_analysis_reply(text: str) -> Dict[str, Any]:
    """Parse the model reply as JSON, tolerating prose around the object."""
    try:
        parsed = json.loads(text)
    except (TypeError, ValueError):
        match = _JSON_SPAN.search(text or "")
        if not match:
            raise AnalysisParseError("Invalid response format")
        try:
            parsed = json.loads(match.group(0))
        except ValueError as e:
            raise AnalysisParseError("Invalid response format") from e
    if not isinstance(parsed, dict):
        raise AnalysisParseError("Expected a JSON object")
    return parsed


def validate_findings(data: Dict[str, Any]) -> VisionFindings:
    try:
        return VisionFindings.model_validate(data)
    except ValidationError as e:
        raise AnalysisValidationError(f"Invalid analysis structure: {e.error_count()} error(s)") from e


class DiseaseClassifier:
    """Vision stage: image in, validated findings out."""

    def __init__(self, service: CompletionService, model: ModelSpec):
        self.service = service
        self.model = model

    def classify(self, image_base64: str) -> VisionFindings:
        if not self.model.supports_vision:
            raise ModelCapabilityError(f"{self.model.name} does not accept image input")
        reply = self.service.complete(
            model=self.model.name,
            messages=[vision_message(CLASSIFY_PROMPT, image_base64)],
            temperature=CLASSIFY_TEMPERATURE,
            max_tokens=MAX_TOKENS,
        )
        return validate_findings(parse_analysis_reply(reply))


class TreatmentNarrator:
    """Narrative stage. Best effort: returns "" when the call fails."""

    def __init__(self, service: CompletionService, model: ModelSpec):
        self.service = service
        self.model = model

    def narrate(self, findings: VisionFindings, language: str) -> str:
        messages = [
            text_message("system", NARRATIVE_SYSTEM_PROMPT.format(language=language_name(language))),
            text_message(
                "user",
                NARRATIVE_USER_PROMPT.format(
                    disease=findings.disease, symptoms=", ".join(findings.symptoms)
                ),
            ),
        ]
        try:
            return self.service.complete(
                model=self.model.name,
                messages=messages,
                temperature=NARRATIVE_TEMPERATURE,
                max_tokens=MAX_TOKENS,
            )
        except Exception as e:
            logger.warning("Treatment narrative unavailable: {}", e)
            return ""


class GuidanceFallback:
    """Text-only guidance used when the image could not be analysed."""

    def __init__(self, service: CompletionService, model: ModelSpec):
        self.service = service
        self.model = model

    def guidance(self, language: str) -> DiseaseAnalysis:
        try:
            content = self.service.complete(
                model=self.model.name,
                messages=[
                    text_message("system", GUIDANCE_SYSTEM_PROMPT.format(language=language_name(language))),
                    text_message("user", GUIDANCE_USER_PROMPT),
                ],
                temperature=NARRATIVE_TEMPERATURE,
                max_tokens=MAX_TOKENS,
            )
        except EmptyReplyError:
            logger.info("Guidance reply was empty, using KVK referral")
            content = ""
        return DiseaseAnalysis(
            disease="Analysis Service - Use Guidance",
            confidence=0.6,
            description=(
                "Direct image analysis is temporarily unavailable. "
                "Follow the guidance below to diagnose your plant."
            ),
            symptoms=["Image upload successful", "Please use the recommendations below"],
            treatment=[
                "Upload a clear, well-lit image of affected leaf",
                "Include both affected and healthy parts",
                "Ensure good camera focus",
            ],
            prevention=["Contact local Agricultural Department for precise diagnosis"],
            ai_generated_treatment=content or KVK_REFERRAL,
            fallback_mode=True,
            analysis_timestamp=_now(),
            language=language,
        )


def service_unavailable_analysis(language: str) -> DiseaseAnalysis:
    return DiseaseAnalysis(
        disease="Service Temporarily Unavailable",
        confidence=0.0,
        description="The AI plant disease analysis service is currently unavailable.",
        symptoms=["Service error - please try again later"],
        treatment=["Try uploading again in a few moments", "Contact your local Agricultural Department"],
        prevention=[],
        ai_generated_treatment=(
            "For immediate assistance, please contact your nearest Krishi Vigyan Kendra (KVK) "
            "or Agricultural Extension Office in your district."
        ),
        fallback_mode=True,
        analysis_timestamp=_now(),
        language=language,
    )


class PlantDiseaseAnalyzer:
    def __init__(
        self,
        classifier: DiseaseClassifier,
        narrator: TreatmentNarrator,
        fallback: GuidanceFallback,
    ):
        self.classifier = classifier
        self.narrator = narrator
        self.fallback = fallback

    @classmethod
    def from_settings(cls, service: CompletionService, settings) -> "PlantDiseaseAnalyzer":
        return cls(
            DiseaseClassifier(service, settings.vision_model),
            TreatmentNarrator(service, settings.narrative_model),
            GuidanceFallback(service, settings.narrative_model),
        )

    def analyze(self, image_base64: str, language: str = "en") -> DiseaseAnalysis:
        """Always returns a DiseaseAnalysis; failures degrade to fallback tiers."""
        logger.info("Starting plant disease analysis with {}", self.classifier.model.name)
        try:
            findings = self.classifier.classify(image_base64)
            logger.info("Disease detected: {}", findings.disease)
            narrative = self.narrator.narrate(findings, language)
            return DiseaseAnalysis(
                **findings.model_dump(),
                ai_generated_treatment=narrative,
                analysis_timestamp=_now(),
                language=language,
                fallback_mode=False,
            )
        except ModelCapabilityError as e:
            logger.info("Vision not supported ({}), using guidance fallback", e)
        except KisanError as e:
            logger.warning("Image analysis failed: {}", e)
        except Exception:
            logger.exception("Unexpected error during image analysis")
        return self._fallback(language)

    def _fallback(self, language: str) -> DiseaseAnalysis:
        try:
            return self.fallback.guidance(language)
        except Exception as e:
            logger.error("Fallback guidance also failed: {}", e)
            return service_unavailable_analysis(language)
