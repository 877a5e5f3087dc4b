# Path: core/vision/clip_model.py
# Purpose: Provide a CLIP-backed vision model for production matching.
# Layer: core/vision.
# Details: Embeds images/text with transformers CLIP and answers pose/face queries by zero-shot prompts.

from __future__ import annotations

from typing import List

import numpy as np
from PIL import Image

from core.models.domain import FaceFeatures, PoseFeatures

from .base import VisionModel

FACE_PROMPTS = ["a photo of a person's face", "a photo with no people in it"]
POSE_PROMPTS = [
    "a photo of a person standing",
    "a photo of a person sitting",
    "a photo of a landscape or object without people",
]


class ClipVisionModel(VisionModel):
    """Vision model backed by a Hugging Face CLIP checkpoint."""

    def __init__(self, model_name: str = "openai/clip-vit-base-patch32", device: str = "cpu") -> None:
        try:
            import torch  # type: ignore[import]
            from transformers import CLIPModel, CLIPProcessor  # type: ignore[import]
        except ImportError as exc:  # pragma: no cover - optional runtime dependency
            raise RuntimeError("torch and transformers are required for the clip vision model.") from exc

        self._torch = torch
        self.name = "clip"
        self.model_name = model_name
        self.device = device
        self.processor = CLIPProcessor.from_pretrained(model_name)
        self.model = CLIPModel.from_pretrained(model_name).to(device).eval()
        self.dim = int(self.model.config.projection_dim)

    def detect_pose(self, image: Image.Image, content: bytes) -> PoseFeatures:
        """Score standing/sitting/no-person prompts and report the best person prompt."""

        probs = self._zero_shot(image, POSE_PROMPTS)
        person = float(probs[0] + probs[1])
        detected = person > 0.5
        confidence = float(max(probs[0], probs[1])) if detected else 0.2
        pose_type = "standing" if probs[0] >= probs[1] else "sitting"
        return PoseFeatures(
            detected=detected,
            confidence=confidence,
            pose_type=pose_type if detected else "unknown",
            stability=confidence * 0.8,
        )

    def detect_faces(self, image: Image.Image, content: bytes) -> List[FaceFeatures]:
        """Report a single whole-image face region when the face prompt dominates."""

        probs = self._zero_shot(image, FACE_PROMPTS)
        if probs[0] <= 0.5:
            return []
        width, height = image.size
        return [FaceFeatures(bounding_box=(0, 0, width, height), confidence=float(probs[0]))]

    def embed(self, image: Image.Image, content: bytes) -> np.ndarray:
        """Return the projected, L2-normalized CLIP image embedding."""

        inputs = self.processor(images=[image.convert("RGB")], return_tensors="pt")
        inputs = {k: v.to(self.device) for k, v in inputs.items()}
        with self._torch.no_grad():
            features = self.model.get_image_features(**inputs)
        return self._normalize(features[0].cpu().numpy())

    def embed_text(self, text: str) -> np.ndarray:
        """Return the projected, L2-normalized CLIP text embedding."""

        inputs = self.processor(text=[text], return_tensors="pt", padding=True, truncation=True)
        inputs = {k: v.to(self.device) for k, v in inputs.items()}
        with self._torch.no_grad():
            features = self.model.get_text_features(**inputs)
        return self._normalize(features[0].cpu().numpy())

    def _zero_shot(self, image: Image.Image, prompts: List[str]) -> np.ndarray:
        inputs = self.processor(text=prompts, images=[image.convert("RGB")], return_tensors="pt", padding=True)
        inputs = {k: v.to(self.device) for k, v in inputs.items()}
        with self._torch.no_grad():
            logits = self.model(**inputs).logits_per_image
        return logits.softmax(dim=-1)[0].cpu().numpy()
