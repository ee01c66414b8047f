"""
Configuration settings for the PDF form field service.
Consolidates all constants and configuration in one place.
"""
import os

# Server Configuration
HTTP_HOST = os.getenv("PDFFORM_HOST", "0.0.0.0")
HTTP_PORT = int(os.getenv("PDFFORM_PORT", "8000"))

# Input Limits
MAX_FILE_SIZE = int(os.getenv("PDFFORM_MAX_FILE_SIZE", str(20 * 1024 * 1024)))  # 20MB
FETCH_TIMEOUT = 30  # seconds, for pdfUrl downloads
PDF_MAGIC = b"%PDF"

# Google Drive direct download
DRIVE_HOST = "drive.google.com"
DRIVE_DOWNLOAD_URL = "https://drive.google.com/uc?export=download&id={file_id}"

# Logging Configuration
LOG_LEVEL = os.getenv("PDFFORM_LOG_LEVEL", "INFO")
LOG_FILE_SERVICE = os.getenv("PDFFORM_LOG_FILE")  # None => console only
LOG_FILE_REQUESTS = os.getenv("PDFFORM_REQUEST_LOG", "requests.log")
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

# Error Messages
ERROR_MESSAGES = {
    'bad_content_type': 'Expected multipart/form-data',
    'file_too_large': 'File too large',
    'no_source': 'pdfUrl or pdf required',
    'no_fields': 'fields (JSON) required',
    'bad_flatten': 'flatten must be true or false',
    'invalid_input': 'Invalid request',
    'bad_fields': 'fields must be a JSON object mapping field name to value',
    'not_pdf': 'Source is not a PDF file',
    'download_failed': 'Download failed',
    'open_failed': 'Failed to open PDF',
    'fill_failed': 'Failed to fill PDF form',
    'not_found': 'Unknown endpoint',
    'internal_error': 'Internal server error'
}
