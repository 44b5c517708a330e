# Copy this file to your working directory (or point SCI_PIPELINE_CONFIG at it)
# to override the defaults used by sci_pipeline.

TASK_SHELL = "bash"

TEMP_PATH_SUFFIX = ".tmp"

FIFO_PATH_SUFFIX = ".fifo"

FIFO_MODE = 0o600

MAX_TASK_WORKERS = 32
