"""Project-wide constants (chunk limits, timeouts, remote naming)."""

MAX_CHUNK_SIZE_BYTES: int = 10 * 1024 * 1024  # 10 MiB per uploaded chunk
STREAM_PIECE_SIZE_BYTES: int = 1024 * 1024  # read size while streaming assembled files

FOLDER_TIMEOUT_SECONDS: float = 30.0
EXISTS_TIMEOUT_SECONDS: float = 10.0
UPLOAD_TIMEOUT_SECONDS: float = 60 * 60.0

WEBDAV_FILES_PATH: str = "remote.php/dav/files"
DESCRIPTION_FILENAME: str = "descripcion.txt"

DEFAULT_UPLOAD_TEMP_DIR: str = "/tmp/nextcloud-public-uploader/"
