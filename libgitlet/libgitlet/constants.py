"""libgitlet constants."""

import string

DEFAULT_REPO_DIR = '.gitlet'
COMMITS_SUBDIR = 'commits'
BLOBS_SUBDIR = 'blobs'
STATE_FILE = 'repo'

DEFAULT_BRANCH = 'master'
INITIAL_COMMIT_MESSAGE = 'initial commit'

HASH_LENGTH = 40
HASH_CHARSET = frozenset(string.hexdigits.lower())

TIMESTAMP_FORMAT = '%a %b %d %H:%M:%S %Y %z'
# Rendering of the Unix epoch in TIMESTAMP_FORMAT, used by every root commit
EPOCH_TIMESTAMP = 'Thu Jan 01 00:00:00 1970 +0000'

MERGE_STYLE_FILE = 'file'
MERGE_STYLE_LINES = 'lines'
MERGE_STYLES = (MERGE_STYLE_FILE, MERGE_STYLE_LINES)
DEFAULT_MERGE_STYLE = MERGE_STYLE_FILE

CONFLICT_START_MARKER = '<<<<<<<'
CONFLICT_CURRENT_NAME = 'HEAD'
CONFLICT_MID_MARKER = '======='
CONFLICT_END_MARKER = '>>>>>>>'
