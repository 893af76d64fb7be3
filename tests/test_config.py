from __future__ import annotations

import unittest

from itinerary_service.config import load_settings
from itinerary_service.errors import ConfigurationError


class SettingsTest(unittest.TestCase):
    def test_defaults(self) -> None:
        settings = load_settings({})
        self.assertIsNone(settings.service_account_json)
        self.assertEqual(settings.collection, "itineraries")
        self.assertEqual(settings.content_provider, "placeholder")
        self.assertEqual(settings.placeholder_delay_seconds, 3.0)

    def test_api_key_selects_chat_provider(self) -> None:
        settings = load_settings({"OPENAI_API_KEY": "sk-test", "OPENAI_BASE_URL": "http://llm.local/v1/"})
        self.assertEqual(settings.content_provider, "openai")
        self.assertEqual(settings.llm_base_url, "http://llm.local/v1")

    def test_explicit_provider_wins(self) -> None:
        settings = load_settings({"OPENAI_API_KEY": "sk-test", "ITINERARY_CONTENT_PROVIDER": "Placeholder"})
        self.assertEqual(settings.content_provider, "placeholder")

    def test_bad_number(self) -> None:
        with self.assertRaises(ConfigurationError):
            load_settings({"ITINERARY_MAX_WORKERS": "many"})

    def test_worker_floor(self) -> None:
        self.assertEqual(load_settings({"ITINERARY_MAX_WORKERS": "0"}).max_workers, 1)


if __name__ == "__main__":
    unittest.main()
