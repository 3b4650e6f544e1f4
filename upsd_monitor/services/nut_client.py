# upsd_monitor/services/nut_client.py

from __future__ import annotations

import traceback
from typing import Any, Callable, List, Optional

from PyNUTClient import PyNUT

from upsd_monitor.models.device import DeviceSnapshot, DeviceVariable
from upsd_monitor.services.variables import coerce_value, decode_text


class UpsdClientError(Exception):
    """Base class for failures talking to a NUT server."""


class UpsdConnectError(UpsdClientError):
    pass


class UpsdAuthError(UpsdClientError):
    pass


class UpsdProtocolError(UpsdClientError):
    pass


# PyNUTClient keeps its telnet connection in a private attribute and never
# closes it (its __del__ only writes LOGOUT).
_HANDLER_ATTR = "_PyNUTClient__srv_handler"

# Library parsers raise these on malformed or non-ASCII replies
# (UnicodeError is a ValueError).
_PARSE_ERRORS = (ValueError, IndexError)


def _orphaned_client(exc: BaseException):
    """Find a half-built client left in the frames of a constructor failure."""
    tb = exc.__traceback__
    while tb is not None:
        candidate = tb.tb_frame.f_locals.get("self")
        if getattr(candidate, _HANDLER_ATTR, None) is not None:
            return candidate
        tb = tb.tb_next
    return None


# ============================================================================
# NUT client
# ============================================================================

class NutClient:
    """
    Thin adapter around PyNUTClient for one poll cycle.

    PyNUTClient dials and performs the USERNAME/PASSWORD exchange in its
    constructor, so connect() takes the credentials and tells the two
    failure kinds apart: socket errors mean the server was unreachable,
    anything the server answered during login means it refused us.
    """

    def __init__(
        self,
        host: str,
        port: int,
        connect_timeout: float,
        op_timeout: float,
        log: Any,
        client_factory: Optional[Callable[..., Any]] = None,
    ):
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout
        self.op_timeout = op_timeout
        self.log = log
        self._factory = client_factory or PyNUT.PyNUTClient
        self._client = None

    # ----------------------------------------------------------------------

    @property
    def connected(self) -> bool:
        return self._client is not None

    @property
    def timeout(self) -> float:
        # One library timeout covers both dialing and reads.
        return max(self.connect_timeout, self.op_timeout)

    def connect(self, username: str | None = None, password: str | None = None) -> None:
        login = username if username and password else None
        secret = password if login else None
        self.disconnect()

        self.log.debug(
            "Connecting to NUT server %s:%s (timeout=%.1fs, login=%s)",
            self.host,
            self.port,
            self.timeout,
            login or "-",
        )
        try:
            self._client = self._factory(
                host=self.host,
                port=self.port,
                login=login,
                password=secret,
                timeout=self.timeout,
            )
        except (OSError, EOFError) as exc:
            self._release_orphan(exc)
            raise UpsdConnectError(f"{self.host}:{self.port}: {exc}") from exc
        except (PyNUT.PyNUTError,) + _PARSE_ERRORS as exc:
            self._release_orphan(exc)
            if login is None:
                raise UpsdConnectError(f"{self.host}:{self.port}: {exc!r}") from exc
            raise UpsdAuthError(f"login as {login!r} rejected: {exc}") from exc

    # ----------------------------------------------------------------------

    def list_devices(self) -> List[DeviceSnapshot]:
        if self._client is None:
            raise UpsdProtocolError("not connected")

        try:
            ups_list = self._client.GetUPSList()
            devices: List[DeviceSnapshot] = []
            for raw_name in ups_list:
                name = decode_text(raw_name)
                raw_vars = self._client.GetUPSVars(name)
                variables = [
                    DeviceVariable(
                        name=decode_text(key),
                        value=coerce_value(decode_text(key), value),
                    )
                    for key, value in raw_vars.items()
                ]
                devices.append(DeviceSnapshot(name=name, variables=variables))
        except (PyNUT.PyNUTError, OSError, EOFError) + _PARSE_ERRORS as exc:
            raise UpsdProtocolError(str(exc) or repr(exc)) from exc

        self.log.debug("NUT server %s reported %d device(s)", self.host, len(devices))
        return devices

    # ----------------------------------------------------------------------

    def _release(self, client) -> None:
        handler = getattr(client, _HANDLER_ATTR, None)
        if handler is None:
            return
        try:
            handler.write(b"LOGOUT\n")
        except (OSError, EOFError) as exc:
            self.log.debug("LOGOUT to %s failed: %s", self.host, exc)
        finally:
            handler.close()
            setattr(client, _HANDLER_ATTR, None)

    def _release_orphan(self, exc: BaseException) -> None:
        self._release(_orphaned_client(exc))
        # The chained cause must not keep the half-built client alive.
        traceback.clear_frames(exc.__traceback__)

    def disconnect(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        self._release(client)
        self.log.debug("Disconnected from NUT server %s", self.host)

    def __enter__(self) -> "NutClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()
