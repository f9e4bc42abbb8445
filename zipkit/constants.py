# Record signatures (little endian u32)
LOCAL_FILE_HEADER_SIGNATURE = 0x04034B50
CENTRAL_DIRECTORY_HEADER_SIGNATURE = 0x02014B50
END_OF_CENTRAL_DIRECTORY_SIGNATURE = 0x06054B50
ZIP64_END_OF_CENTRAL_DIRECTORY_SIGNATURE = 0x06064B50
ZIP64_END_OF_CENTRAL_DIRECTORY_LOCATOR_SIGNATURE = 0x07064B50
DATA_DESCRIPTOR_SIGNATURE = 0x08074B50

# Compression methods
METHOD_STORED = 0
METHOD_DEFLATED = 8
METHOD_ZSTD = 93
METHOD_AES = 99

# General purpose flags
FLAG_ENCRYPTED = 1 << 0
FLAG_DATA_DESCRIPTOR = 1 << 3
FLAG_UTF8 = 1 << 11

# Extra field tags
EXTRA_ZIP64 = 0x0001
EXTRA_AES = 0x9901

# Version needed to extract (times ten)
VERSION_DEFAULT = 10
VERSION_DEFLATE = 20
VERSION_ZIP64 = 45
VERSION_AES = 51
VERSION_ZSTD = 63

# Upper byte of "version made by": 3 = Unix
SYSTEM_UNIX = 3

U16_MAX = 0xFFFF
U32_MAX = 0xFFFFFFFF

# Fixed part of the end of central directory record, signature included
EOCD_SIZE = 22
ZIP64_EOCD_SIZE = 56
ZIP64_LOCATOR_SIZE = 20
MAX_COMMENT_SIZE = U16_MAX

DEFAULT_FILE_PERMISSIONS = 0o644
DEFAULT_DIR_PERMISSIONS = 0o755
