"""
Schema metadata: describe records, the describe cache, the schema index and
field allow-listing.
"""

from sfplanner.schema.models import (
    ObjectSummary,
    ObjectDescribe,
    FieldDescribe,
    ChildRelationshipDescribe,
    ObjectLister,
    ObjectDescriber,
    StaticMetadataProvider
)

from sfplanner.schema.cache import (
    DescribeCache,
    InMemoryDescribeCache,
    RedisDescribeCache,
    get_describe_cache
)

from sfplanner.schema.index import (
    DEFAULT_ORG,
    SchemaIndex,
    SchemaObjectEntry,
    build_index,
    expand_index
)

from sfplanner.schema.fields import (
    GroupByLookup,
    is_field_allowed,
    filter_allowed_fields,
    choose_order_by,
    pick_group_by_lookup
)

__all__ = [
    'ObjectSummary',
    'ObjectDescribe',
    'FieldDescribe',
    'ChildRelationshipDescribe',
    'ObjectLister',
    'ObjectDescriber',
    'StaticMetadataProvider',
    'DescribeCache',
    'InMemoryDescribeCache',
    'RedisDescribeCache',
    'get_describe_cache',
    'DEFAULT_ORG',
    'SchemaIndex',
    'SchemaObjectEntry',
    'build_index',
    'expand_index',
    'GroupByLookup',
    'is_field_allowed',
    'filter_allowed_fields',
    'choose_order_by',
    'pick_group_by_lookup',
]
