from .main import SchemaComposerService
from .definitions import (
    UiNode,
    ChannelBinding,
    SchemaRecord,
    ComposedSchema,
    PlaceholderReason,
    SELF_ALIAS,
    DEFAULT_MAX_DEPTH,
)
from .store import SchemaStore, InMemorySchemaStore
from .extractor import extract_schema_refs, extract_schema_refs_ordered
from .resolver import resolve_schema_refs, resolve_schema, make_placeholder, is_placeholder
from .channels import collect_required_channels, build_data_context, AliasRegistry, ChannelContribution
from .exporter import collect_schemas_for_export
from .guard import LatestRequestGuard, StaleResultError
