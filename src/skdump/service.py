"""sourcekitd access.

``SourceKitService`` is the interface the rest of skdump talks to:
UID lookup plus synchronous requests. ``SourceKitd`` implements it on top
of the sourcekitd C API through ctypes.

Reply conversion keeps UIDs numeric. A UID value becomes a ``UInt64``
carrying the UID handle, and the resolver decides later whether it has a
name. Dictionary keys are always resolved, since map keys are strings.

Example:
    with SourceKitd(find_sourcekitd()) as service:
        reply = service.send_request(editor_open_request("main.swift"))
"""

from __future__ import annotations

import ctypes
import ctypes.util
import logging
import os
from collections.abc import Mapping, Sequence
from enum import IntEnum
from pathlib import Path
from typing import Protocol, runtime_checkable

from skdump.errors import ServiceError
from skdump.requests import Request, RequestUID, RequestValue
from skdump.values import (
    Bool,
    Bytes,
    Double,
    Int64,
    List,
    Map,
    Null,
    ResponseValue,
    Text,
    UInt64,
)

logger = logging.getLogger(__name__)

LIBRARY_ENV_VAR = "SKDUMP_SOURCEKITD"

# Checked in order after the configured path and the environment variable.
KNOWN_LOCATIONS = (
    "/Applications/Xcode.app/Contents/Developer/Toolchains/XcodeDefault.xctoolchain"
    "/usr/lib/sourcekitd.framework/sourcekitd",
    "/Library/Developer/CommandLineTools/usr/lib/sourcekitd.framework/sourcekitd",
    "/usr/lib/libsourcekitdInProc.so",
    "/usr/local/lib/libsourcekitdInProc.so",
)

_ARRAY_APPEND = ctypes.c_size_t(-1).value


@runtime_checkable
class SourceKitService(Protocol):
    """What skdump needs from sourcekitd."""

    def uid_string(self, uid: int) -> str | None:
        """Name of a UID, or None if it has none."""
        ...

    def send_request(self, request: Request) -> Map:
        """Send a request and wait for the reply."""
        ...


class VariantType(IntEnum):
    """sourcekitd_variant_type_t."""

    NULL = 0
    DICTIONARY = 1
    ARRAY = 2
    INT64 = 3
    STRING = 4
    UID = 5
    BOOL = 6
    DOUBLE = 7
    DATA = 8


class _Variant(ctypes.Structure):
    _fields_ = [("data", ctypes.c_uint64 * 3)]


_DictionaryApplier = ctypes.CFUNCTYPE(ctypes.c_bool, ctypes.c_void_p, _Variant, ctypes.c_void_p)

_vp = ctypes.c_void_p
_PROTOTYPES: dict[str, tuple[object, list[object]]] = {
    "sourcekitd_initialize": (None, []),
    "sourcekitd_shutdown": (None, []),
    "sourcekitd_uid_get_from_cstr": (_vp, [ctypes.c_char_p]),
    "sourcekitd_uid_get_string_ptr": (ctypes.c_char_p, [_vp]),
    "sourcekitd_request_dictionary_create": (
        _vp,
        [ctypes.POINTER(_vp), ctypes.POINTER(_vp), ctypes.c_size_t],
    ),
    "sourcekitd_request_dictionary_set_value": (None, [_vp, _vp, _vp]),
    "sourcekitd_request_dictionary_set_string": (None, [_vp, _vp, ctypes.c_char_p]),
    "sourcekitd_request_dictionary_set_int64": (None, [_vp, _vp, ctypes.c_int64]),
    "sourcekitd_request_dictionary_set_uid": (None, [_vp, _vp, _vp]),
    "sourcekitd_request_array_create": (_vp, [ctypes.POINTER(_vp), ctypes.c_size_t]),
    "sourcekitd_request_array_set_value": (None, [_vp, ctypes.c_size_t, _vp]),
    "sourcekitd_request_array_set_string": (None, [_vp, ctypes.c_size_t, ctypes.c_char_p]),
    "sourcekitd_request_array_set_int64": (None, [_vp, ctypes.c_size_t, ctypes.c_int64]),
    "sourcekitd_request_array_set_uid": (None, [_vp, ctypes.c_size_t, _vp]),
    "sourcekitd_request_release": (None, [_vp]),
    "sourcekitd_send_request_sync": (_vp, [_vp]),
    "sourcekitd_response_dispose": (None, [_vp]),
    "sourcekitd_response_is_error": (ctypes.c_bool, [_vp]),
    "sourcekitd_response_error_get_description": (ctypes.c_char_p, [_vp]),
    "sourcekitd_response_get_value": (_Variant, [_vp]),
    "sourcekitd_variant_get_type": (ctypes.c_int, [_Variant]),
    "sourcekitd_variant_dictionary_apply_f": (
        ctypes.c_bool,
        [_Variant, _DictionaryApplier, _vp],
    ),
    "sourcekitd_variant_array_get_count": (ctypes.c_size_t, [_Variant]),
    "sourcekitd_variant_array_get_value": (_Variant, [_Variant, ctypes.c_size_t]),
    "sourcekitd_variant_int64_get_value": (ctypes.c_int64, [_Variant]),
    "sourcekitd_variant_bool_get_value": (ctypes.c_bool, [_Variant]),
    "sourcekitd_variant_string_get_length": (ctypes.c_size_t, [_Variant]),
    "sourcekitd_variant_string_get_ptr": (_vp, [_Variant]),
    "sourcekitd_variant_uid_get_value": (_vp, [_Variant]),
    "sourcekitd_variant_data_get_size": (ctypes.c_size_t, [_Variant]),
    "sourcekitd_variant_data_get_ptr": (_vp, [_Variant]),
}

# Only present in newer toolchains.
_OPTIONAL_PROTOTYPES: dict[str, tuple[object, list[object]]] = {
    "sourcekitd_variant_double_get_value": (ctypes.c_double, [_Variant]),
}


def find_sourcekitd(configured: Path | str | None = None) -> Path:
    """Locate the sourcekitd library.

    Looks in:
    1. The configured path
    2. $SKDUMP_SOURCEKITD
    3. Well-known Xcode and Swift toolchain locations
    4. The system library search path

    Raises:
        ServiceError: No library was found
    """
    if configured:
        path = Path(configured).expanduser()
        if not path.exists():
            raise ServiceError(f"Configured sourcekitd library does not exist: {path}")
        return path

    from_env = os.environ.get(LIBRARY_ENV_VAR)
    if from_env:
        path = Path(from_env).expanduser()
        if not path.exists():
            raise ServiceError(f"${LIBRARY_ENV_VAR} points to a missing file: {path}")
        return path

    for candidate in KNOWN_LOCATIONS:
        path = Path(candidate)
        if path.exists():
            return path

    found = ctypes.util.find_library("sourcekitdInProc") or ctypes.util.find_library("sourcekitd")
    if found:
        return Path(found)

    raise ServiceError(f"Could not find sourcekitd; set ${LIBRARY_ENV_VAR} to its path")


class SourceKitd:
    """SourceKitService backed by the sourcekitd C library."""

    def __init__(self, library_path: Path | str):
        """Load and initialize sourcekitd.

        Args:
            library_path: Path to the sourcekitd shared library

        Raises:
            ServiceError: The library could not be loaded
        """
        self.library_path = Path(library_path)
        try:
            self._lib = ctypes.CDLL(str(self.library_path))
        except OSError as e:
            raise ServiceError(f"Could not load {self.library_path}: {e}") from e

        self._bind(_PROTOTYPES, required=True)
        self._bind(_OPTIONAL_PROTOTYPES, required=False)
        self._uids: dict[str, int] = {}
        self._closed = False

        self._lib.sourcekitd_initialize()
        logger.debug("Initialized sourcekitd from %s", self.library_path)

    def _bind(self, prototypes: dict[str, tuple[object, list[object]]], required: bool) -> None:
        for name, (restype, argtypes) in prototypes.items():
            try:
                function = getattr(self._lib, name)
            except AttributeError as e:
                if required:
                    raise ServiceError(f"{self.library_path} has no symbol {name}") from e
                continue
            function.restype = restype
            function.argtypes = argtypes

    def close(self) -> None:
        """Shut sourcekitd down."""
        if not self._closed:
            self._lib.sourcekitd_shutdown()
            self._closed = True

    def __enter__(self) -> SourceKitd:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # === UIDs ===

    def uid_string(self, uid: int) -> str | None:
        """Name of a UID handle, or None if it has none."""
        name = self._lib.sourcekitd_uid_get_string_ptr(ctypes.c_void_p(uid))
        if name is None:
            return None
        return name.decode("utf-8")

    def uid_for(self, name: str) -> int:
        """UID handle for a name, created by sourcekitd on first use."""
        uid = self._uids.get(name)
        if uid is None:
            uid = self._lib.sourcekitd_uid_get_from_cstr(name.encode("utf-8"))
            if not uid:
                raise ServiceError(f"sourcekitd returned no UID for {name!r}")
            self._uids[name] = uid
        return uid

    # === Requests ===

    def send_request(self, request: Request) -> Map:
        """Send a request synchronously and convert the reply.

        Raises:
            ServiceError: sourcekitd replied with an error
        """
        logger.debug("Sending %s", _describe(request))
        request_object = self._dictionary(request)
        try:
            response = self._lib.sourcekitd_send_request_sync(request_object)
        finally:
            self._lib.sourcekitd_request_release(request_object)

        try:
            if self._lib.sourcekitd_response_is_error(response):
                description = self._lib.sourcekitd_response_error_get_description(response)
                message = description.decode("utf-8") if description else "unknown error"
                raise ServiceError(f"{_describe(request)} failed: {message}")
            value = self._convert(self._lib.sourcekitd_response_get_value(response))
        finally:
            self._lib.sourcekitd_response_dispose(response)

        if not isinstance(value, Map):
            raise ServiceError(f"{_describe(request)} returned a {type(value).__name__}")
        return value

    def _object(self, value: RequestValue) -> int:
        if isinstance(value, Mapping):
            return self._dictionary(value)
        if isinstance(value, Sequence) and not isinstance(value, str | bytes):
            return self._array(value)
        raise TypeError(f"Cannot build a request object from {type(value).__name__}")

    def _dictionary(self, values: Mapping[str, RequestValue]) -> int:
        lib = self._lib
        obj = lib.sourcekitd_request_dictionary_create(None, None, 0)
        for key, value in values.items():
            key_uid = self.uid_for(key)
            match value:
                case RequestUID(name):
                    lib.sourcekitd_request_dictionary_set_uid(obj, key_uid, self.uid_for(name))
                case str():
                    lib.sourcekitd_request_dictionary_set_string(obj, key_uid, value.encode())
                case bool() | int():
                    lib.sourcekitd_request_dictionary_set_int64(obj, key_uid, int(value))
                case _:
                    child = self._object(value)
                    lib.sourcekitd_request_dictionary_set_value(obj, key_uid, child)
                    lib.sourcekitd_request_release(child)
        return obj

    def _array(self, values: Sequence[RequestValue]) -> int:
        lib = self._lib
        obj = lib.sourcekitd_request_array_create(None, 0)
        for value in values:
            match value:
                case RequestUID(name):
                    lib.sourcekitd_request_array_set_uid(obj, _ARRAY_APPEND, self.uid_for(name))
                case str():
                    lib.sourcekitd_request_array_set_string(obj, _ARRAY_APPEND, value.encode())
                case bool() | int():
                    lib.sourcekitd_request_array_set_int64(obj, _ARRAY_APPEND, int(value))
                case _:
                    child = self._object(value)
                    lib.sourcekitd_request_array_set_value(obj, _ARRAY_APPEND, child)
                    lib.sourcekitd_request_release(child)
        return obj

    # === Replies ===

    def _convert(self, variant: _Variant) -> ResponseValue:
        lib = self._lib
        kind = lib.sourcekitd_variant_get_type(variant)
        match kind:
            case VariantType.NULL:
                return Null()
            case VariantType.DICTIONARY:
                entries: dict[str, ResponseValue] = {}
                for key_uid, child in self._dictionary_items(variant):
                    key = self.uid_string(key_uid)
                    if key is None:
                        raise ServiceError(f"Reply dictionary key UID {key_uid} has no name")
                    entries[key] = self._convert(child)
                return Map(entries)
            case VariantType.ARRAY:
                count = lib.sourcekitd_variant_array_get_count(variant)
                return List(
                    [
                        self._convert(lib.sourcekitd_variant_array_get_value(variant, index))
                        for index in range(count)
                    ]
                )
            case VariantType.INT64:
                return Int64(lib.sourcekitd_variant_int64_get_value(variant))
            case VariantType.STRING:
                length = lib.sourcekitd_variant_string_get_length(variant)
                pointer = lib.sourcekitd_variant_string_get_ptr(variant)
                data = ctypes.string_at(pointer, length) if pointer else b""
                return Text(data.decode("utf-8"))
            case VariantType.UID:
                return UInt64(lib.sourcekitd_variant_uid_get_value(variant) or 0)
            case VariantType.BOOL:
                return Bool(bool(lib.sourcekitd_variant_bool_get_value(variant)))
            case VariantType.DOUBLE:
                return Double(lib.sourcekitd_variant_double_get_value(variant))
            case VariantType.DATA:
                size = lib.sourcekitd_variant_data_get_size(variant)
                pointer = lib.sourcekitd_variant_data_get_ptr(variant)
                return Bytes(ctypes.string_at(pointer, size) if pointer else b"")
            case _:
                raise ServiceError(f"Unknown sourcekitd variant type {kind}")

    def _dictionary_items(self, variant: _Variant) -> list[tuple[int, _Variant]]:
        items: list[tuple[int, _Variant]] = []

        # Runs inside sourcekitd; exceptions here would be swallowed by ctypes.
        def collect(key: int | None, value: _Variant, _context: int | None) -> bool:
            items.append((key or 0, _Variant.from_buffer_copy(value)))
            return True

        applier = _DictionaryApplier(collect)
        self._lib.sourcekitd_variant_dictionary_apply_f(variant, applier, None)
        return items


def _describe(request: Request) -> str:
    kind = request.get("key.request")
    name = kind.name if isinstance(kind, RequestUID) else str(kind)
    target = request.get("key.sourcefile", "<text>")
    return f"{name} {target}"
