from __future__ import annotations


class SensorError(Exception):
    """Base for acquisition failures. Readers turn these into "no data"."""


class NoDeviceFound(SensorError):
    pass


class ElementUnreadable(SensorError):
    pass


class DescriptorError(SensorError):
    pass


class RegistryQueryFailed(SensorError):
    pass
