"""skdump: SourceKit structure, syntax and documentation as JSON."""

from skdump.enrich import CursorInfoQuery, Enricher, enrich
from skdump.errors import (
    ConfigError,
    MalformedSyntaxMapError,
    SerializationError,
    ServiceError,
    SkdumpError,
    SourceReadError,
    UnresolvableIdentifierError,
)
from skdump.serialize import documents_to_json, to_json, to_python, tokens_to_json
from skdump.service import SourceKitd, SourceKitService, find_sourcekitd
from skdump.session import Session, swift_files
from skdump.syntaxmap import (
    SyntaxToken,
    decode_syntax_map,
    documented_token_offsets,
    identifier_offsets,
)
from skdump.uids import MIN_UID, UIDResolver
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
    from_python,
)

__version__ = "0.1.0"

__all__ = [
    "MIN_UID",
    "Bool",
    "Bytes",
    "ConfigError",
    "CursorInfoQuery",
    "Double",
    "Enricher",
    "Int64",
    "List",
    "MalformedSyntaxMapError",
    "Map",
    "Null",
    "ResponseValue",
    "SerializationError",
    "ServiceError",
    "Session",
    "SkdumpError",
    "SourceKitService",
    "SourceKitd",
    "SourceReadError",
    "SyntaxToken",
    "Text",
    "UIDResolver",
    "UInt64",
    "UnresolvableIdentifierError",
    "decode_syntax_map",
    "documented_token_offsets",
    "documents_to_json",
    "enrich",
    "find_sourcekitd",
    "from_python",
    "identifier_offsets",
    "swift_files",
    "to_json",
    "to_python",
    "tokens_to_json",
]
