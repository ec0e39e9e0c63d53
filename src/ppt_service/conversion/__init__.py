"""
Domain layer for presentation conversion.
Provides interfaces (gateways) and a service for upload intake and conversion
orchestration, abstracting disk I/O and the LibreOffice engine so front-ends
(HTTP or others) can use the same core logic.
"""

from .interfaces import ConverterGateway, RawUpload, StorageGateway, UploadedFile
from .service import ConversionJob, ConversionResult, ConversionService, FailureStage
