"""The ``gitlet`` command line."""

import logging
import os
import sys
from collections.abc import Sequence
from pathlib import Path

from .exceptions import RepositoryError, RepositoryNotFoundError
from .merge import MergeOutcome
from .repository import LogEntry, Repository, Status

logger = logging.getLogger(__name__)

# Number of operands each command takes; checkout has several forms and is validated separately
COMMAND_ARITY = {
    'init': 0,
    'add': 1,
    'commit': 1,
    'rm': 1,
    'log': 0,
    'global-log': 0,
    'find': 1,
    'status': 0,
    'branch': 1,
    'rm-branch': 1,
    'reset': 1,
    'merge': 1,
    'add-remote': 2,
    'rm-remote': 1,
    'push': 2,
    'fetch': 2,
    'pull': 2,
}
REMOTE_COMMANDS = ('add-remote', 'rm-remote', 'push', 'fetch', 'pull')


class UsageError(Exception):
    """Exception raised for a missing or unknown command, or wrong operands."""


def check_usage(args: Sequence[str]) -> None:
    """Validate a command line before anything touches the repository.

    :raises UsageError: If the command is missing, unknown, or has the wrong operands."""
    if not args:
        msg = 'Please enter a command.'
        raise UsageError(msg)

    command, operands = args[0], args[1:]
    if command == 'checkout':
        valid = (len(operands) == 1 and operands[0] != '--'
                 or len(operands) == 2 and operands[0] == '--'
                 or len(operands) == 3 and operands[1] == '--')
    elif command in COMMAND_ARITY:
        valid = len(operands) == COMMAND_ARITY[command]
    else:
        msg = 'No command with that name exists.'
        raise UsageError(msg)

    if not valid:
        msg = 'Incorrect operands.'
        raise UsageError(msg)


def format_log_entry(entry: LogEntry) -> str:
    return f'===\ncommit {entry.commit_ref}\nDate: {entry.commit.timestamp}\n{entry.commit.message}\n'


def format_status(status: Status) -> str:
    lines = ['=== Branches ===']
    lines += [f'*{name}' if name == status.current_branch else name for name in status.branches]
    lines += ['', '=== Staged Files ===', *status.staged]
    lines += ['', '=== Removed Files ===', *status.removed]
    lines += ['', '=== Modifications Not Staged For Commit ===']
    lines += [f'{path} ({kind})' for path, kind in status.modified]
    lines += ['', '=== Untracked Files ===', *status.untracked, '']
    return '\n'.join(lines)


def run(repo: Repository, args: Sequence[str]) -> None:
    """Execute one validated command against a repository, printing its output."""
    command, operands = args[0], list(args[1:])

    match command:
        case 'init':
            repo.init()
        case 'add':
            repo.add(operands[0])
        case 'commit':
            repo.commit(operands[0])
        case 'rm':
            repo.rm(operands[0])
        case 'log':
            for entry in repo.log():
                print(format_log_entry(entry))
        case 'global-log':
            for entry in repo.global_log():
                print(format_log_entry(entry))
        case 'find':
            for commit_ref in repo.find(operands[0]):
                print(commit_ref)
        case 'status':
            print(format_status(repo.status()))
        case 'checkout':
            match operands:
                case ['--', file]:
                    repo.checkout_file(file)
                case [commit_ref, '--', file]:
                    repo.checkout_file(file, commit_ref)
                case [branch]:
                    repo.checkout_branch(branch)
        case 'branch':
            repo.add_branch(operands[0])
        case 'rm-branch':
            repo.delete_branch(operands[0])
        case 'reset':
            repo.reset(operands[0])
        case 'merge':
            result = repo.merge(operands[0])
            if result.outcome == MergeOutcome.ANCESTOR:
                print('Given branch is an ancestor of the current branch.')
            elif result.outcome == MergeOutcome.FAST_FORWARD:
                print('Current branch fast-forwarded.')
            elif result.has_conflicts:
                print('Encountered a merge conflict.')
        case _ if command in REMOTE_COMMANDS:
            message = repo.remote_command(command)
            if message:
                print(message)


def configure_logging() -> None:
    level_name = os.environ.get('GITLET_LOG_LEVEL', 'WARNING').upper()
    level = logging.getLevelNamesMapping().get(level_name, logging.WARNING)
    logging.basicConfig(level=level, stream=sys.stderr, format='%(levelname)s %(name)s: %(message)s')


def main(argv: Sequence[str] | None = None) -> int:
    """Run the gitlet command line in the current directory.

    Every failure is reported as a single line on stdout and leaves the repository
    as it was before the command started."""
    configure_logging()
    args = list(sys.argv[1:] if argv is None else argv)

    try:
        check_usage(args)
        repo = Repository(Path.cwd(), os.environ.get('GITLET_DIR'), os.environ.get('GITLET_MERGE_STYLE'))
        if args[0] != 'init' and not repo.exists():
            msg = 'Not in an initialized Gitlet directory.'
            raise RepositoryNotFoundError(msg)
        run(repo, args)
    except (UsageError, RepositoryError, ValueError) as e:
        logger.debug('Command %s failed', args[:1], exc_info=True)
        print(e)

    return 0


if __name__ == '__main__':
    sys.exit(main())
