# widgetkit/models/__init__.py

from .schema_project import SchemaProject, SchemaType
