# app/services/ocr_llm.py

import io
import logging
from typing import Optional

import cv2 # This is the OpenCV library
import google.generativeai as genai
import numpy as np
from PIL import Image
from pydantic import ValidationError

from ..errors import ExtractionError
from ..models import ExtractedFields
from ..ports import remaining_timeout

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-1.5-flash"

PROMPT = """
You are an expert receipt parser. Analyze this receipt image and extract its data.
Your response MUST be a single valid JSON object with exactly these keys:

    {
        "date": "YYYY-MM-DD",
        "store": "store name",
        "items": "item 1, item 2, ...",
        "total_amount": 1234
    }

- 'date' is the purchase date in 'YYYY-MM-DD' format.
- 'items' lists the purchased item names separated by commas.
- 'total_amount' is the total paid, as an integer with no currency symbol or separators.
If a field is not visible, use "" for text fields and 0 for 'total_amount'.
"""


class OCRService:
    def __init__(self, api_key: Optional[str] = None, model_name: str = DEFAULT_MODEL,
                 preprocess: bool = True, model=None):
        """
        Initializes the Gemini client. A ready-made model object can be passed
        in place of an API key.
        """
        if model is None:
            genai.configure(api_key=api_key)
            model = genai.GenerativeModel(model_name)
        self.model = model
        self.preprocess = preprocess

    def _preprocess_image(self, image: bytes) -> bytes:
        """
        Grayscale + adaptive thresholding for cleaner text. Falls back to the
        original bytes if OpenCV cannot process the image.
        """
        try:
            img = cv2.imdecode(np.frombuffer(image, dtype=np.uint8), cv2.IMREAD_GRAYSCALE)
            if img is None:
                raise ValueError("image could not be decoded")

            processed_img = cv2.adaptiveThreshold(
                img, 255,
                cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
                cv2.THRESH_BINARY, 11, 2
            )
            ok, encoded = cv2.imencode(".png", processed_img)
            if not ok:
                raise ValueError("processed image could not be encoded")
            return encoded.tobytes()
        except Exception as e:
            logger.warning("Image preprocessing failed, using original image: %s", e)
            return image

    @staticmethod
    def parse_response(text: str) -> Optional[ExtractedFields]:
        # The response from Gemini is often wrapped in markdown (```json ... ```)
        clean_json_response = text.strip().replace("```json", "").replace("```", "").strip()
        if clean_json_response in ("", "null"):
            return None
        return ExtractedFields.model_validate_json(clean_json_response)

    def extract(self, image: bytes, deadline: Optional[float] = None) -> Optional[ExtractedFields]:
        """
        Sends the receipt image to Gemini and parses the structured fields it
        returns. Raises ExtractionError on any API or parsing failure.
        """
        if self.preprocess:
            image = self._preprocess_image(image)

        try:
            timeout = remaining_timeout(deadline)
            image_file = Image.open(io.BytesIO(image))

            logger.info("Sending request to Gemini...")
            if timeout is None:
                response = self.model.generate_content([PROMPT, image_file])
            else:
                response = self.model.generate_content(
                    [PROMPT, image_file], request_options={"timeout": timeout}
                )
            text = response.text
        except Exception as e:
            raise ExtractionError(f"Gemini request failed: {e}") from e

        try:
            return self.parse_response(text)
        except ValidationError as e:
            raise ExtractionError(f"Gemini returned unusable output: {e}") from e
