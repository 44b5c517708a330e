import re

#: Placeholder tokens in command patterns e.g. {i:infile}, {o:outfile}, {os:pipe}, {p:level}
PLACEHOLDER_PATTERN = re.compile(r"\{(os|o|i|p):([^{}:]+)\}")

INPUT_PLACEHOLDER = "i"
OUTPUT_PLACEHOLDER = "o"
OUTPUT_STREAM_PLACEHOLDER = "os"
PARAM_PLACEHOLDER = "p"

DEFAULT_SHELL = "bash"

TEMP_PATH_SUFFIX = ".tmp"

FIFO_PATH_SUFFIX = ".fifo"

FIFO_MODE = 0o600

# a streaming producer and its consumer must run at the same time
MAX_TASK_WORKERS = 32
