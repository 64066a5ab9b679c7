from abc import ABC, abstractmethod
import asyncio
from typing import Any

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class OCRClientInterface(ABC):
    """Base class of OCR engines.

    OCR engines are local libraries rather than HTTP backends, so this mirrors
    the configuration conventions of ClientInterface (``OCR_<ENGINE>_<KEY>``)
    without the HTTP machinery. Recognition is blocking and always runs in a
    worker thread with a deadline.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """
        Validates that all required configuration values for the client are set and valid.

        Raises:
            ValueError: If any required configuration value is missing or invalid.
        """
        for config in self._get_required_config():
            _ = self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        return "ocr"

    def get_engine_name(self) -> str:
        """
        Returns the name of the engine used by the client. E.g. "tesseract"
        """
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        """
        Returns the name of the engine used by the client. E.g. "Tesseract"
        """
        pass

    @abstractmethod
    def get_languages(self) -> list[str]:
        """
        Returns the default language profile (e.g. ["ara", "eng"]).
        """
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """
        Returns all required configurations for the client.

        Returns:
            list[EnvConfig]: A list containing the details of each required configuration key.
        """
        pass

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """
        Retrieves the value of a configuration key for the client. E.g. "OCR_TESSERACT_LANGUAGES"

        Raises:
            ValueError: If the value type is unsupported or a required key is missing.
        """
        key = f"{self.get_client_type().upper()}_{self.get_engine_name().upper()}_{raw_key.upper()}"
        return self._helper_config.get_typed_val(key, default=default, val_type=val_type)

    ##########################################
    ############### REQUESTS #################
    ##########################################

    @abstractmethod
    def _recognize(self, image: bytes, languages: list[str]) -> str:
        """
        Runs the engine on an encoded image (PNG/JPEG/...). Blocking.

        Args:
            image (bytes): The encoded image.
            languages (list[str]): Language profile for this call.

        Returns:
            str: The recognised text.
        """
        pass

    async def do_recognize(self, image: bytes, languages: list[str] | None = None, timeout: float | None = None) -> str:
        """Recognise the text of an image.

        Args:
            image (bytes): The encoded image.
            languages (list[str] | None): Language profile, defaults to get_languages().
            timeout (float | None): Seconds before the call is abandoned.

        Returns:
            str: The recognised text, stripped.

        Raises:
            TimeoutError: If recognition exceeds the timeout. The engine call is
                abandoned, not killed: its worker thread runs to completion and
                the result is discarded.
            Exception: Whatever the engine raises for unreadable images.
        """
        langs = languages or self.get_languages()
        self.logging.debug("Running %s OCR (%s) on %d bytes.", self.get_engine_name(), "+".join(langs), len(image))
        text = await asyncio.wait_for(asyncio.to_thread(self._recognize, image, langs), timeout=timeout)
        return (text or "").strip()
