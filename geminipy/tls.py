import ssl
from pathlib import Path

from pydantic import BaseModel, ConfigDict

# ECDHE key exchange with RSA or ECDSA certificates, AEAD ciphers only.
# TLS 1.3 suites are not configurable here and are all AEAD.
DEFAULT_CIPHERS = "ECDHE+AESGCM:ECDHE+CHACHA20"
DEFAULT_MIN_VERSION = ssl.TLSVersion.TLSv1_2


class TLSConfig(BaseModel):
    """TLS settings for dialing or listening.

    Build an SSLContext from it once with ``client_context`` or
    ``server_context`` and share that context read-only.
    """

    model_config = ConfigDict(frozen=True)

    certfile: Path | None = None
    keyfile: Path | None = None
    cafile: Path | None = None
    insecure_skip_verify: bool = False
    min_version: ssl.TLSVersion = DEFAULT_MIN_VERSION
    ciphers: str = DEFAULT_CIPHERS

    def client_context(self) -> ssl.SSLContext:
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        self._apply_policy(context)

        if self.insecure_skip_verify:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        elif self.cafile is not None:
            context.load_verify_locations(cafile=self.cafile)
        else:
            context.load_default_certs(ssl.Purpose.SERVER_AUTH)

        if self.certfile is not None:
            context.load_cert_chain(self.certfile, self.keyfile)
        return context

    def server_context(self) -> ssl.SSLContext:
        if self.certfile is None:
            raise ValueError("A server certificate (certfile) is required")

        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        self._apply_policy(context)
        context.load_cert_chain(self.certfile, self.keyfile)
        return context

    def _apply_policy(self, context: ssl.SSLContext) -> None:
        context.minimum_version = self.min_version
        context.set_ciphers(self.ciphers)


def client_context(config: TLSConfig | ssl.SSLContext | None) -> ssl.SSLContext:
    """Resolve a dial configuration; a ready SSLContext is used as given."""
    if isinstance(config, ssl.SSLContext):
        return config
    if config is None:
        config = TLSConfig()
    return config.client_context()


def server_context(config: TLSConfig | ssl.SSLContext | None) -> ssl.SSLContext:
    if isinstance(config, ssl.SSLContext):
        return config
    if config is None:
        raise ValueError("A server needs a TLSConfig with a certificate")
    return config.server_context()
