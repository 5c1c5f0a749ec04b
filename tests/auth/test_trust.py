import ssl

from github_workflows_mcp.auth.trust import TrustDecision, TrustedHosts, is_certificate_failure
from github_workflows_mcp.clients.errors.github import CertificateError, TransportError
from github_workflows_mcp.settings import SettingsStore
from tests.conftest import FakePrompter


class TestIsCertificateFailure:
    def test_certificate_error(self):
        assert is_certificate_failure(CertificateError(action="Get current user", host="github.example.com"))

    def test_ssl_error_as_cause(self):
        error = TransportError(action="Get current user", host="github.example.com", message="Connection failed")
        error.__cause__ = ssl.SSLCertVerificationError("certificate verify failed")

        assert is_certificate_failure(error)

    def test_ssl_error_as_context(self):
        error = OSError("Connection failed")
        error.__context__ = ssl.SSLCertVerificationError("certificate verify failed")

        assert is_certificate_failure(error)

    def test_other_ssl_errors(self):
        assert not is_certificate_failure(ssl.SSLError("wrong version number"))

    def test_transport_error(self):
        error = TransportError(action="Get current user", host="github.example.com", message="Connection refused")

        assert not is_certificate_failure(error)

    def test_cyclic_chain(self):
        first = OSError("first")
        second = OSError("second")
        first.__context__ = second
        second.__context__ = first

        assert not is_certificate_failure(first)


class TestTrustedHosts:
    def test_add_is_idempotent(self, settings_store: SettingsStore):
        trusted_hosts = TrustedHosts(settings_store)

        trusted_hosts.add("github.example.com")
        trusted_hosts.add("GitHub.Example.com")
        trusted_hosts.add("https://github.example.com/")

        assert list(trusted_hosts) == ["github.example.com"]
        assert len(trusted_hosts) == 1

    def test_contains_ignores_case(self, settings_store: SettingsStore):
        trusted_hosts = TrustedHosts(settings_store)
        trusted_hosts.add("github.example.com")

        assert "GITHUB.EXAMPLE.COM" in trusted_hosts
        assert "github.com" not in trusted_hosts

    def test_persisted(self, settings_store: SettingsStore):
        TrustedHosts(settings_store).add("github.example.com")

        reloaded = SettingsStore(settings_path=settings_store.settings_path, secret_store=settings_store.secret_store)

        assert "github.example.com" in TrustedHosts(reloaded)


class TestTrustDecision:
    async def test_accepted(self, settings_store: SettingsStore):
        prompter = FakePrompter(trust=True)
        trusted_hosts = TrustedHosts(settings_store)

        assert await TrustDecision(prompter=prompter, trusted_hosts=trusted_hosts).confirm_trust("github.example.com")

        assert "github.example.com" in trusted_hosts
        assert prompter.trust_prompts == [
            ("github.example.com", "The security certificate of github.example.com is not trusted. Do you want to proceed anyway?")
        ]

    async def test_declined(self, settings_store: SettingsStore):
        trusted_hosts = TrustedHosts(settings_store)

        assert not await TrustDecision(prompter=FakePrompter(trust=False), trusted_hosts=trusted_hosts).confirm_trust("github.example.com")

        assert len(trusted_hosts) == 0
        assert not settings_store.settings_path.exists()
