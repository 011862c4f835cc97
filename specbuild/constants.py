"""Constants for the spec build pipeline."""

# Input and output locations, relative to the working directory
SOURCE_PATH = "spec.rst"
OUTPUT_DIR = "build"
OUTPUT_FILENAME = "index.html"

# Live-reload server
SERVER_HOST = "127.0.0.1"
SERVER_PORT = 8080

# Suffix used by the atomic writer for in-flight files
TEMP_SUFFIX = ".tmp"

# Task names
TASK_CLEAN = "clean"
TASK_BUILD = "build"
TASK_WATCH = "watch"
TASK_SERVE = "serve"
TASK_START = "start"
TASK_DEFAULT = "default"

# Log component names
COMPONENT_CLI = "cli"
COMPONENT_CLEANER = "cleaner"
COMPONENT_BUILDER = "builder"
COMPONENT_RENDERER = "renderer"
COMPONENT_WATCHER = "watcher"
COMPONENT_SERVER = "server"
COMPONENT_TASKS = "tasks"

# docutils system message levels
DOCUTILS_INFO = 1
DOCUTILS_WARNING = 2
DOCUTILS_ERROR = 3

# Process exit codes
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130
