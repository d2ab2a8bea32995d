from shared.helper.HelperConfig import HelperConfig
from shared.clients.dms.DMSClientInterface import DMSClientInterface


class DMSClientManager:
    """
    Resolves the configured DMS engine to its client class.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """
        Reads the DMS engine name from ENV configuration.

        Returns:
            str: The engine name, capitalized (e.g. "Rest").
        """
        engine = self.helper_config.get_string_val("DMS_ENGINE", default="rest")
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> DMSClientInterface:
        """
        Instantiates the client for the configured engine from shared.clients.dms.{engine}.DMSClient{Engine}.

        Raises:
            ValueError: If the engine is unknown.
        """
        engine = self._get_engine_from_env()
        class_name = f"DMSClient{engine}"
        try:
            module = __import__(
                f"shared.clients.dms.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported DMS engine specified: '{engine}'. Error: {e}")
        self.logging.debug("Instantiated DMS client for engine: %s", engine)
        return client_class(helper_config=self.helper_config)

    def get_client(self) -> DMSClientInterface:
        """
        Returns the instantiated DMS client.
        """
        return self.client
