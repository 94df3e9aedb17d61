import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from address_agent.agent import create_orchestrator, create_services
from address_agent.core.errors import ConfigurationError
from address_agent.core.failover import FailoverPolicy
from address_agent.tools import ExperimentalServices, ResearchServices
from address_agent.variants import VARIANTS, get_variant, list_variants
from config.settings import AppConfig, ModelConfig, ServiceConfig, Toolset, load_config

from helpers import FakeServices, ScriptedProvider


class TestSettings(unittest.TestCase):
    def test_from_env(self):
        env = {
            "AGENT_MODEL": "openai::gpt-4o-mini",
            "OPENAI_API_KEY": "sk-test",
            "EXA_AI_KEY": "exa",
            "GOOGLE_SEARCH_API_KEY": "maps",
        }
        with patch.dict(os.environ, env, clear=True):
            config = AppConfig.from_env()

        self.assertEqual(config.model.model, "openai::gpt-4o-mini")
        self.assertEqual(config.model.openai_api_key, "sk-test")
        self.assertEqual(config.services.exa_api_key, "exa")
        self.assertEqual(config.services.google_maps_api_key, "maps")
        self.assertEqual(config.services.fec_api_key, "DEMO_KEY")

    def test_from_env_does_not_mutate_base(self):
        base = AppConfig()
        with patch.dict(os.environ, {"EXA_AI_KEY": "exa"}, clear=True):
            AppConfig.from_env(base)
        self.assertIsNone(base.services.exa_api_key)

    def test_load_config_file(self):
        data = {
            "default_variant": "standard",
            "services": {"timeout": 10},
            "variant_overrides": {"standard": {"min_confidence": 85}},
        }
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "agent.json"
            path.write_text(json.dumps(data))
            with patch.dict(os.environ, {}, clear=True):
                config = load_config(path)

        self.assertEqual(config.default_variant, "standard")
        self.assertEqual(config.services.timeout, 10)
        self.assertEqual(config.variant_overrides["standard"]["min_confidence"], 85)

    def test_load_config_missing_file(self):
        with patch.dict(os.environ, {}, clear=True):
            config = load_config(Path("/nonexistent/agent.json"))
        self.assertEqual(config.default_variant, "streaming")


class TestVariants(unittest.TestCase):
    def test_builtin_budgets(self):
        self.assertEqual(VARIANTS["standard"].max_iterations, 15)
        self.assertEqual(VARIANTS["streaming"].max_iterations, 30)
        self.assertEqual(VARIANTS["experimental"].max_iterations, 20)
        for profile in VARIANTS.values():
            self.assertEqual(profile.min_confidence, 75)
        self.assertEqual(VARIANTS["experimental"].toolset, Toolset.EXPERIMENTAL)

    def test_templates_carry_placeholders(self):
        for profile in VARIANTS.values():
            self.assertIn("{{agent_prompt}}", profile.instruction_template)
            self.assertIn("{{input}}", profile.instruction_template)

    def test_overrides(self):
        profile = get_variant("standard", {"standard": {"min_confidence": 90, "max_iterations": 5}})
        self.assertEqual(profile.min_confidence, 90)
        self.assertEqual(profile.max_iterations, 5)
        self.assertEqual(VARIANTS["standard"].min_confidence, 75)

    def test_unknown_variant(self):
        with self.assertRaises(ConfigurationError):
            get_variant("turbo")

    def test_list_variants(self):
        names = [v["name"] for v in list_variants()]
        self.assertEqual(names, ["standard", "streaming", "experimental"])


class TestAssembly(unittest.TestCase):
    def test_services_per_toolset(self):
        base = create_services(Toolset.BASE, ServiceConfig())
        experimental = create_services(Toolset.EXPERIMENTAL, ServiceConfig())
        self.assertIs(type(base), ResearchServices)
        self.assertIsInstance(experimental, ExperimentalServices)

    def test_create_orchestrator(self):
        orchestrator = create_orchestrator(
            "experimental",
            AppConfig(),
            provider=ScriptedProvider([]),
            services=FakeServices(),
            enable_logging=False,
        )

        self.assertEqual(orchestrator.profile.name, "experimental")
        self.assertEqual(len(orchestrator.tools), 10)
        self.assertEqual(orchestrator.gate.threshold, 75)
        self.assertIsNone(orchestrator.failover)

    def test_failover_enabled_by_override(self):
        config = AppConfig(
            model=ModelConfig(openai_api_key="sk-test"),
            variant_overrides={"standard": {"failover": {"enabled": True}}},
        )
        orchestrator = create_orchestrator(
            "standard", config, provider=ScriptedProvider([]), services=FakeServices()
        )

        self.assertIsInstance(orchestrator.failover, FailoverPolicy)
        session = orchestrator.failover.start(orchestrator.provider)
        secondary = session._secondary_factory()
        self.assertEqual((secondary.provider_name, secondary.model_id), ("openai", "gpt-4o"))
        self.assertIs(session._secondary_factory(), secondary)

    def test_failover_secondary_credentials_checked_at_construction(self):
        config = AppConfig(variant_overrides={"standard": {"failover": {"enabled": True}}})
        with self.assertRaises(ConfigurationError):
            create_orchestrator("standard", config, provider=ScriptedProvider([]), services=FakeServices())

    def test_missing_credentials_fail_at_construction(self):
        with self.assertRaises(ConfigurationError):
            create_orchestrator("standard", AppConfig(), services=FakeServices())

    def test_tool_description_override(self):
        config = AppConfig(variant_overrides={
            "streaming": {"tool_descriptions": {"search_web": "Search the web carefully."}},
        })
        orchestrator = create_orchestrator(
            None, config, provider=ScriptedProvider([]), services=FakeServices()
        )
        by_name = {t.name: t for t in orchestrator.tools}
        self.assertEqual(orchestrator.profile.name, "streaming")
        self.assertEqual(by_name["search_web"].description, "Search the web carefully.")


if __name__ == "__main__":
    unittest.main()
