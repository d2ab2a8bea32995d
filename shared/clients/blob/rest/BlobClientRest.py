from urllib.parse import quote

from shared.clients.blob.BlobClientInterface import DEFAULT_ALLOWED_MEDIA_TYPES, DEFAULT_MAX_FILE_SIZE, BlobClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class BlobClientRest(BlobClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")

    def _get_engine_name(self) -> str:
        return "Rest"

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="MAX_FILE_SIZE", val_type="number", default=DEFAULT_MAX_FILE_SIZE),
            EnvConfig(env_key="ALLOWED_MEDIA_TYPES", val_type="list", default=DEFAULT_ALLOWED_MEDIA_TYPES),
        ]

    def _get_auth_header(self, token: str | None) -> dict:
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/actuator/health"

    def _get_endpoint_upload(self) -> str:
        return "/api/files"

    def _get_endpoint_download(self, filename: str) -> str:
        return f"/api/files/{quote(filename)}"

    def _parse_upload_response(self, response: dict) -> str:
        return response.get("filename") or response.get("fileName")
