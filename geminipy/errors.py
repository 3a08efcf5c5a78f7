class GeminiError(Exception):
    """Base exception for the geminipy library."""
    pass

# --- Transport Errors ---

class TransportError(GeminiError):
    """A generic error occurred in the network or TLS layer."""
    pass

class DnsFailureError(TransportError): pass
class SocketConnectError(TransportError): pass
class SocketAcceptError(TransportError): pass
class SocketWriteError(TransportError): pass
class SocketReadError(TransportError): pass
class TlsHandshakeError(TransportError): pass
class ConnectionClosedError(TransportError): pass
class DialCancelledError(TransportError): pass

class TruncatedResponseError(SocketReadError):
    """The peer dropped the transport without a TLS close_notify."""
    pass

# --- Protocol Errors ---

class ProtocolError(GeminiError):
    """A generic error occurred in the Gemini protocol logic."""
    pass

class InvalidHeaderError(ProtocolError): pass
class InvalidStatusError(InvalidHeaderError): pass
class UrlParseError(ProtocolError): pass
class UnsupportedProtocolError(ProtocolError): pass
