"""Integration tests for AI Visibility Core.

Covers database setup, package imports, configuration loading, the LLM
client's provider plumbing, CLI smoke tests, and syntax validation of
every Python file in the project.
"""

import ast
import importlib
from pathlib import Path
from unittest.mock import AsyncMock, patch

import httpx
import pytest

# ---------------------------------------------------------------------------
# Project root (conftest.py already puts it on sys.path)
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent

API_KEY_VARS = (
    "OPENAI_API_KEY",
    "PERPLEXITY_API_KEY",
    "GEMINI_API_KEY",
    "GOOGLE_GENERATIVE_AI_API_KEY",
)


@pytest.fixture()
def no_api_keys(monkeypatch):
    # setenv first so teardown also removes keys a test loads from a .env file.
    for var in API_KEY_VARS:
        monkeypatch.setenv(var, "unset")
        monkeypatch.delenv(var)


# ===========================================================================
# 1. Database setup
# ===========================================================================
class TestDatabaseSetup:
    """Verify that the claim store can be initialised with in-memory SQLite."""

    def test_init_db_creates_tables(self, test_db):
        from ai_visibility.database import get_engine
        from sqlalchemy import inspect

        table_names = inspect(get_engine()).get_table_names()
        assert "ai_hallucinations" in table_names

    def test_get_session_context_manager(self, test_db):
        from ai_visibility.database import get_session
        from sqlalchemy import text as sa_text

        with get_session() as session:
            row = session.execute(sa_text("SELECT 1")).fetchone()
            assert row is not None
            assert row[0] == 1

    def test_session_rolls_back_on_error(self, test_db):
        from ai_visibility.database import get_session
        from ai_visibility.models import HallucinationClaim
        from sqlalchemy import func, select

        with pytest.raises(RuntimeError):
            with get_session() as session:
                session.add(HallucinationClaim(claim_text="closes at 11pm", model_provider="openai"))
                session.flush()
                raise RuntimeError("boom")

        with get_session() as session:
            assert session.scalar(select(func.count()).select_from(HallucinationClaim)) == 0

    def test_new_claims_default_to_open(self, test_db):
        from ai_visibility.database import get_session
        from ai_visibility.models import CorrectionStatus, HallucinationClaim

        with get_session() as session:
            claim = HallucinationClaim(claim_text="closes at 11pm", model_provider="openai")
            session.add(claim)
            session.flush()
            assert claim.correction_status is CorrectionStatus.OPEN
            assert claim.detected_at is not None


# ===========================================================================
# 2. Package imports
# ===========================================================================
class TestModuleImports:
    """All public packages should be importable."""

    @pytest.mark.parametrize("module_path,names", [
        ("ai_visibility.models", ["BusinessContext", "PageAuditResult", "EngineQueryResult",
                                  "HallucinationClaim", "HealthScoreInput"]),
        ("ai_visibility.modules.page_audit", ["PageAuditor", "parse_page"]),
        ("ai_visibility.modules.citation", ["CitationProber", "ENGINE_REGISTRY", "compute_share_of_voice"]),
        ("ai_visibility.modules.correction", ["CorrectionVerifier", "run_correction_follow_up"]),
        ("ai_visibility.modules.health", ["compute_health_score", "score_to_grade"]),
        ("ai_visibility.integrations", ["LLMClient", "Completion"]),
        ("ai_visibility.database", ["init_db", "get_session", "reset_engine", "Base", "get_engine"]),
    ])
    def test_module_importable(self, module_path, names):
        mod = importlib.import_module(module_path)
        for name in names:
            assert hasattr(mod, name), name + " not found in " + module_path

    def test_errors_share_a_base(self):
        from ai_visibility import errors
        for cls in (errors.ValidationError, errors.FetchError, errors.EngineError, errors.ProbeError):
            assert issubclass(cls, errors.VisibilityError)
        assert issubclass(errors.ValidationError, ValueError)


# ===========================================================================
# 3. Configuration loading
# ===========================================================================
class TestSettings:

    def test_settings_file_parseable(self):
        import yaml
        settings_path = PROJECT_ROOT / "config" / "settings.yaml"
        with open(settings_path) as fh:
            config = yaml.safe_load(fh)
        for section in ("app", "database", "llm", "engines", "page_audit", "correction"):
            assert section in config, "Missing config section: " + section
        assert config["app"]["name"] == "AI Visibility Core"

    def test_load_project_settings(self, tmp_path):
        from ai_visibility.config import DEFAULT_ENGINES, load_settings
        settings = load_settings(
            str(PROJECT_ROOT / "config" / "settings.yaml"),
            env_path=str(tmp_path / "missing.env"),
        )
        assert settings.engines == list(DEFAULT_ENGINES)
        assert settings.cooldown_days == 14
        assert settings.perplexity_model == "sonar"
        assert settings.gemini_search_grounding is True

    def test_load_custom_settings(self, tmp_path):
        from ai_visibility.config import load_settings
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(
            "llm:\n"
            "  openai:\n"
            "    model: gpt-4o\n"
            "  gemini:\n"
            "    search_grounding: false\n"
            "  rate_limits:\n"
            "    google: 5\n"
            "engines:\n"
            "  enabled: [OpenAI, google]\n"
            "page_audit:\n"
            "  timeout: 3\n"
            "  llm_answer_first: false\n"
            "correction:\n"
            "  cooldown_days: 7\n",
            encoding="utf-8",
        )
        settings = load_settings(str(config_file), env_path=str(tmp_path / "missing.env"))
        assert settings.openai_model == "gpt-4o"
        assert settings.gemini_model == "gemini-2.0-flash"
        assert settings.gemini_search_grounding is False
        assert settings.rate_limits == {"openai": 60, "perplexity": 50, "google": 5}
        assert settings.engines == ["openai", "google"]
        assert settings.fetch_timeout == 3.0
        assert settings.llm_answer_first is False
        assert settings.cooldown_days == 7

    def test_missing_file_gives_defaults(self, tmp_path):
        from ai_visibility.config import Settings, load_settings
        settings = load_settings(str(tmp_path / "nope.yaml"), env_path=str(tmp_path / "missing.env"))
        assert settings == Settings()

    def test_env_file_supplies_keys(self, tmp_path, no_api_keys):
        from ai_visibility.config import build_llm_client, load_settings
        env_file = tmp_path / ".env"
        env_file.write_text("PERPLEXITY_API_KEY=pplx-from-env-file\n", encoding="utf-8")
        settings = load_settings(str(tmp_path / "nope.yaml"), env_path=str(env_file))
        client = build_llm_client(settings)
        assert client.configured_providers() == ["perplexity"]


# ===========================================================================
# 4. LLM client plumbing
# ===========================================================================
class TestLLMClient:

    def test_no_keys_means_no_credentials(self, no_api_keys):
        from ai_visibility.integrations import LLMClient
        client = LLMClient()
        assert client.configured_providers() == []
        assert client.has_credential("openai") is False
        assert client.has_credential("anthropic") is False

    @pytest.mark.asyncio
    async def test_complete_rejects_unknown_provider(self, no_api_keys):
        from ai_visibility.integrations import LLMClient
        with pytest.raises(ValueError):
            await LLMClient().complete("hello", provider="anthropic")

    @pytest.mark.asyncio
    async def test_complete_requires_credential(self, no_api_keys):
        from ai_visibility.integrations import LLMClient
        with pytest.raises(RuntimeError):
            await LLMClient().complete("hello", provider="perplexity")

    @pytest.mark.asyncio
    async def test_perplexity_returns_text_and_citations(self, no_api_keys):
        from ai_visibility.integrations import LLMClient
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={
                "choices": [{"message": {"content": "  Charcoal N Chill is a favourite.  "}}],
                "citations": ["https://yelp.com/biz/charcoal-n-chill", 42],
                "usage": {"prompt_tokens": 12, "completion_tokens": 8},
            })

        client = LLMClient(perplexity_api_key="pplx-test", transport=httpx.MockTransport(handler))
        completion = await client.complete("best hookah bar in Alpharetta GA", provider="perplexity")

        assert seen == {"path": "/chat/completions", "auth": "Bearer pplx-test"}
        assert completion.text == "Charcoal N Chill is a favourite."
        assert completion.citations == ["https://yelp.com/biz/charcoal-n-chill"]
        assert completion.model == "sonar"
        assert client.get_usage_summary()["requests_by_provider"] == {"perplexity": 1}

    @pytest.mark.asyncio
    async def test_perplexity_http_error_propagates(self, no_api_keys):
        from ai_visibility.integrations import LLMClient
        transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"error": "down"}))
        client = LLMClient(perplexity_api_key="pplx-test", transport=transport)
        with pytest.raises(httpx.HTTPStatusError):
            await client.complete("query", provider="perplexity")

    def _gemini_response(self, *uris):
        from types import SimpleNamespace
        chunks = [SimpleNamespace(web=SimpleNamespace(uri=u)) for u in uris]
        return SimpleNamespace(
            text="  Charcoal N Chill is a favourite.  ",
            candidates=[SimpleNamespace(grounding_metadata=SimpleNamespace(grounding_chunks=chunks))],
        )

    @pytest.mark.asyncio
    async def test_gemini_grounding_sources_become_citations(self, no_api_keys):
        from ai_visibility.integrations import LLMClient
        response = self._gemini_response(
            "https://maps.google.com/?cid=42",
            "https://maps.google.com/?cid=42",
            "https://yelp.com/biz/charcoal-n-chill",
        )
        with patch("ai_visibility.integrations.llm_client.genai.GenerativeModel") as model_cls:
            model_cls.return_value.generate_content.return_value = response
            client = LLMClient(gemini_api_key="gm-test")
            completion = await client.complete("query", provider="google", search_grounding=True)

        call = model_cls.return_value.generate_content.call_args
        assert call.kwargs["tools"] == "google_search_retrieval"
        assert completion.text == "Charcoal N Chill is a favourite."
        assert completion.citations == [
            "https://maps.google.com/?cid=42",
            "https://yelp.com/biz/charcoal-n-chill",
        ]

    @pytest.mark.asyncio
    async def test_gemini_grounding_can_be_disabled(self, no_api_keys):
        from ai_visibility.integrations import LLMClient
        with patch("ai_visibility.integrations.llm_client.genai.GenerativeModel") as model_cls:
            model_cls.return_value.generate_content.return_value = self._gemini_response(
                "https://maps.google.com/?cid=42"
            )
            client = LLMClient(gemini_api_key="gm-test", gemini_search_grounding=False)
            completion = await client.complete("query", provider="google", search_grounding=True)

        assert model_cls.return_value.generate_content.call_args.kwargs["tools"] is None
        assert completion.citations == []

    @pytest.mark.asyncio
    async def test_generate_json_strips_fences(self, no_api_keys):
        from ai_visibility.integrations import Completion, LLMClient
        client = LLMClient(openai_api_key="sk-test")
        fake = AsyncMock(return_value=Completion(
            text='```json\n{"score": 80}\n```', provider="openai", model="gpt-4o-mini",
        ))
        with patch.object(client, "_call_openai", fake):
            assert await client.generate_json("Rate this") == {"score": 80}

    @pytest.mark.asyncio
    async def test_generate_json_invalid(self, no_api_keys):
        from ai_visibility.integrations import Completion, LLMClient
        client = LLMClient(openai_api_key="sk-test")
        fake = AsyncMock(return_value=Completion(text="about 80", provider="openai", model="gpt-4o-mini"))
        with patch.object(client, "_call_openai", fake):
            with pytest.raises(ValueError):
                await client.generate_json("Rate this")


# ===========================================================================
# 5. CLI commands (smoke test via CliRunner)
# ===========================================================================
class TestCLICommands:
    """CLI help should work for all registered commands."""

    def _get_runner_and_app(self):
        from typer.testing import CliRunner
        from ai_visibility.cli import app
        return CliRunner(), app

    def test_main_help(self):
        runner, cli_app = self._get_runner_and_app()
        result = runner.invoke(cli_app, ["--help"])
        assert result.exit_code == 0
        assert "AI Visibility Core" in result.output

    @pytest.mark.parametrize("command", ["audit", "probe", "health", "follow-up", "init-db"])
    def test_command_help(self, command):
        runner, cli_app = self._get_runner_and_app()
        result = runner.invoke(cli_app, [command, "--help"])
        assert result.exit_code == 0, (
            "Command '" + command + "' --help failed with exit code "
            + str(result.exit_code) + ": " + result.output
        )

    def test_health_command(self):
        runner, cli_app = self._get_runner_and_app()
        result = runner.invoke(cli_app, ["health", "--visibility", "0.5", "--open-claims", "1"])
        assert result.exit_code == 0, result.output
        assert "AI Health Score" in result.output

    def test_health_rejects_bad_visibility(self):
        runner, cli_app = self._get_runner_and_app()
        result = runner.invoke(cli_app, ["health", "--visibility", "2"])
        assert result.exit_code == 1

    def test_health_audit_url_needs_name(self):
        runner, cli_app = self._get_runner_and_app()
        result = runner.invoke(cli_app, ["health", "--audit-url", "https://charcoalnchill.com"])
        assert result.exit_code == 1

    def test_init_db_command(self, tmp_path):
        runner, cli_app = self._get_runner_and_app()
        db_file = tmp_path / "claims.db"
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("database:\n  url: sqlite:///" + str(db_file) + "\n", encoding="utf-8")

        result = runner.invoke(cli_app, ["init-db", "--config", str(config_file)])
        assert result.exit_code == 0, result.output
        assert db_file.exists()


# ===========================================================================
# 6. All Python files syntax validation
# ===========================================================================
class TestAllPythonFilesSyntax:
    """Every .py file in ai_visibility/ and tests/ should pass ast.parse."""

    def _collect_python_files(self):
        files = []
        for directory in ("ai_visibility", "tests"):
            base = PROJECT_ROOT / directory
            if base.exists():
                for py_file in base.rglob("*.py"):
                    if "__pycache__" in py_file.parts:
                        continue
                    files.append(py_file)
        return sorted(files)

    def test_all_python_files_parse(self):
        py_files = self._collect_python_files()
        assert len(py_files) > 0, "No Python files found"
        errors = []
        for py_file in py_files:
            try:
                ast.parse(py_file.read_text(encoding="utf-8"))
            except SyntaxError as exc:
                errors.append(str(py_file.relative_to(PROJECT_ROOT)) + ": " + str(exc))
        if errors:
            pytest.fail("Python syntax errors found:\n" + "\n".join(errors[:20]))
