from pathlib import Path

import pytest

from ai_editor.config import (
    DEFAULT_ALLOWED_FILENAMES,
    Language,
    ScanPolicy,
    detect_language,
    load_scan_policy,
)
from ai_editor.exceptions import ConfigurationError


@pytest.mark.unit
def test_default_policy_rules() -> None:
    policy = ScanPolicy()

    assert policy.is_excluded_dir("node_modules")
    assert policy.is_excluded_file("yarn.lock")
    assert policy.is_relevant_file("main.TS")
    assert policy.is_relevant_file("Dockerfile")
    assert not policy.is_relevant_file("logo.png")


@pytest.mark.unit
def test_load_scan_policy_replaces_only_given_keys(tmp_path: Path) -> None:
    policy_file = tmp_path / "policy.yaml"
    policy_file.write_text(
        "excluded_dir_names: [generated]\nallowed_extensions: [py, .MD]\n",
        encoding="utf-8",
    )

    policy = load_scan_policy(policy_file)

    assert policy.excluded_dir_names == frozenset({"generated"})
    assert policy.allowed_extensions == frozenset({".py", ".md"})
    assert policy.allowed_filenames == DEFAULT_ALLOWED_FILENAMES


@pytest.mark.unit
def test_load_scan_policy_rejects_unknown_keys(tmp_path: Path) -> None:
    policy_file = tmp_path / "policy.yaml"
    policy_file.write_text("exclude_everything: true\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_scan_policy(policy_file)


@pytest.mark.unit
def test_load_scan_policy_rejects_non_mapping(tmp_path: Path) -> None:
    policy_file = tmp_path / "policy.yaml"
    policy_file.write_text("- node_modules\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_scan_policy(policy_file)


@pytest.mark.unit
@pytest.mark.parametrize(
    ("file_path", "expected"),
    [
        ("src/app.tsx", Language.TYPESCRIPT),
        ("styles/site.SCSS", Language.SCSS),
        ("config.yml", Language.YAML),
        ("tool.py", Language.PYTHON),
        ("Makefile", None),
        ("", None),
    ],
)
def test_detect_language(file_path: str, expected: Language | None) -> None:
    assert detect_language(file_path) == expected


@pytest.mark.unit
def test_detect_language_falls_back_to_mime() -> None:
    assert detect_language("page.htm", mime_type="text/html; charset=utf-8") == Language.HTML
