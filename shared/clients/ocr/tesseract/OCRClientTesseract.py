import io

import pytesseract
from PIL import Image

from shared.clients.ocr.OCRClientInterface import OCRClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class OCRClientTesseract(OCRClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._languages = self.get_config_val("LANGUAGES", default="ara+eng", val_type="string")
        cmd = self.get_config_val("CMD", default="", val_type="string")
        if cmd:
            pytesseract.pytesseract.tesseract_cmd = cmd

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_engine_name(self) -> str:
        return "Tesseract"

    def get_languages(self) -> list[str]:
        return [lang for lang in self._languages.split("+") if lang]

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="LANGUAGES", val_type="string", default="ara+eng"),
            EnvConfig(env_key="CMD", val_type="string", default=""),
        ]

    ##########################################
    ############### REQUESTS #################
    ##########################################

    def _recognize(self, image: bytes, languages: list[str]) -> str:
        with Image.open(io.BytesIO(image)) as img:
            return pytesseract.image_to_string(img, lang="+".join(languages))
