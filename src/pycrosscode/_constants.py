"""Internal constants shared across the library."""

DEFAULT_RESOURCE = "CrTCrosses"
DEFAULT_REQUEST_TIMEOUT: float = 30.0
USER_AGENT = "pycrosscode"

# OData v4 control annotations.
ODATA_NEXT_LINK = "@odata.nextLink"
ODATA_COUNT = "@odata.count"
ODATA_VALUE = "value"
