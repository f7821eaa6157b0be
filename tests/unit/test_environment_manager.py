from dcompose.MANAGERS.environment_manager import EnvironmentManager


def test_dotenv_and_process_environment(tmp_path):
    (tmp_path / ".env").write_text("# comment\nTAG=1.0\nNAME=from-file\nEMPTY\n")
    manager = EnvironmentManager(str(tmp_path))

    context = manager.get_substitution_context({"NAME": "from-process"})

    assert context["TAG"] == "1.0"
    assert context["NAME"] == "from-process"
    assert context["EMPTY"] == ""


def test_missing_dotenv_file(tmp_path):
    manager = EnvironmentManager(str(tmp_path))
    assert manager.get_substitution_context({"A": "1"}) == {"A": "1"}


def test_dotenv_disabled(tmp_path):
    (tmp_path / ".env").write_text("TAG=1.0\n")
    manager = EnvironmentManager(str(tmp_path), env_file=None)
    assert manager.get_substitution_context({}) == {}
