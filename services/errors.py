"""
Errors raised by the storage, detection, crop and search clients.
"""


class PipelineError(Exception):
    """Base class for every failure the result pipeline knows about"""


class ConfigurationError(PipelineError):
    """A required setting (API key, credential) is missing"""


class BlobStoreError(PipelineError):
    """Writing to the object store failed"""


class ImageDownloadError(PipelineError):
    """The uploaded image could not be fetched back from its public URL"""


class CropError(PipelineError):
    """A bounding polygon could not be turned into a valid pixel crop"""


class DetectionError(PipelineError):
    """The object detection service failed or returned garbage"""


class SearchError(PipelineError):
    """The visual search service failed or returned garbage"""
