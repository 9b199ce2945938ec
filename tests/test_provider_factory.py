from unittest import TestCase, mock

from config.settings import Settings
from domain.scan_errors import ConfigurationError
from domain.scan_pipeline import CoverScanPipeline
from infrastructure.google_vision_rest import GoogleVisionRestOCRProvider
from infrastructure.provider_factory import build_ocr_provider, build_pipeline, build_search_provider
from infrastructure.tmdb_client import TMDBSearchClient


class ProviderFactoryTest(TestCase):
    def test_api_key_selects_rest_provider(self):
        provider = build_ocr_provider(Settings(tmdb_api_key="t", vision_api_key="v"))
        self.assertIsInstance(provider, GoogleVisionRestOCRProvider)

    def test_service_account_selects_sdk_provider(self):
        settings = Settings(tmdb_api_key="t", google_credentials="/secrets/sa.json")
        with mock.patch("infrastructure.google_vision_ocr.GoogleVisionOCRProvider") as sdk_provider:
            provider = build_ocr_provider(settings)
        sdk_provider.assert_called_once_with("/secrets/sa.json", timeout=settings.request_timeout)
        self.assertIs(provider, sdk_provider.return_value)

    def test_no_ocr_access_is_a_configuration_error(self):
        with self.assertRaises(ConfigurationError):
            build_ocr_provider(Settings(tmdb_api_key="t"))

    def test_search_provider(self):
        self.assertIsInstance(build_search_provider(Settings(tmdb_api_key="t")), TMDBSearchClient)

    def test_pipeline(self):
        pipeline = build_pipeline(Settings(tmdb_api_key="t", vision_api_key="v", auto_detect_delay=0))
        self.assertIsInstance(pipeline, CoverScanPipeline)
