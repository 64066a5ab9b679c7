from shared.helper.HelperConfig import HelperConfig
from shared.clients.ocr.OCRClientInterface import OCRClientInterface

class OCRClientManager:
    """
    Manager class to handle the OCR client based on configuration.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """
        Reads the OCR engine from ENV configuration.

        Returns:
            str: The name of the OCR engine, capitalised (e.g. "Tesseract").
        """
        engine = self.helper_config.get_string_val("OCR_ENGINE", default="tesseract")
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> OCRClientInterface:
        """
        Initializes the OCR client based on the engine specified in the configuration.

        Raises:
            ValueError: If the engine is unsupported.
        """
        engine = self._get_engine_from_env()
        className = f"OCRClient{engine}"
        try:
            module = __import__(
                f"shared.clients.ocr.{engine.lower()}.{className}",
                fromlist=[className],
            )
            client = getattr(module, className)(helper_config=self.helper_config)
            self.logging.debug(f"Instantiated OCR client for engine: {engine}")
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported OCR engine specified: '{engine}'. Error: {e}")
        return client

    def get_client(self) -> OCRClientInterface:
        """
        Returns the instantiated OCR client.

        Returns:
            OCRClientInterface: The OCR client instance.
        """
        return self.client
