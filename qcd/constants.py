"""
Constants for qcd.

Table names and limits shared by the store, the stack and the CLI.
Defaults that users may want to change are also exposed via the config system.
"""

# Table names
MAIN_TABLE_NAME = "main"
STACK_TABLE_NAME = "_stack"

# Stack entries older than this are removed by the expiry sweep
STACK_EXPIRE_DAYS = 21
SECONDS_PER_DAY = 24 * 60 * 60

# idx values are unsigned 32-bit integers
MIN_IDX = 0
MAX_IDX = 2**32 - 1

# Session ids shorter than this disable the stack
MIN_SESSIONID_LENGTH = 23

# Database defaults
DEFAULT_DBNAME = ".qcd_rs.sqlite"

# Environment variable prefix
ENV_PREFIX = "QCD_RS_"

# Minimum width of the idx column in listings
MIN_IDX_WIDTH = 4
