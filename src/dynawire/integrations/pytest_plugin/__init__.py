from dynawire.integrations.pytest_plugin.plugin import (
    RecordingLookupService,
    dynawire_decorate,
    dynawire_lookup,
    dynawire_services,
)

__all__ = [
    "RecordingLookupService",
    "dynawire_decorate",
    "dynawire_lookup",
    "dynawire_services",
]
