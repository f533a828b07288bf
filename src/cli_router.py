#!/usr/bin/env python3
"""
CLI Router for the workout analysis core.

Modular command architecture: every top-level command maps to a command
class in the commands package.
"""

import argparse
import logging
import sys
from typing import Optional, List

from commands import get_command, COMMANDS
from core.config import get_config_manager
from core.models.interaction import FEEDBACK_VALUES

logger = logging.getLogger(__name__)


class CLIRouter:
    """
    CLI router for analysis commands.

    Command structure:
    - python run.py analyze run --selections '{"energy": 3, "focus": "strength"}'
    - python run.py health check
    - python run.py learning feedback --recommendation-id ID --feedback helpful
    """

    def __init__(self, container=None):
        """
        Initialize CLI router.

        Args:
            container: Optional container handed to every command (global if None)
        """
        self.container = container
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create the main argument parser."""
        parser = argparse.ArgumentParser(
            description="Workout customization analysis core",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=self._get_examples_text()
        )

        subparsers = parser.add_subparsers(
            dest='command',
            help='Available commands',
            metavar='{command}'
        )

        self._add_analyze_parser(subparsers)
        self._add_health_parser(subparsers)
        self._add_learning_parser(subparsers)

        return parser

    def _add_analyze_parser(self, subparsers):
        """Add analyze command parser."""
        analyze_parser = subparsers.add_parser(
            'analyze',
            help='Analyze workout selections'
        )

        analyze_subparsers = analyze_parser.add_subparsers(
            dest='subcommand',
            help='Analysis operations',
            metavar='{run,workout}'
        )

        run_parser = analyze_subparsers.add_parser('run', help='Analyze selections and print recommendations')
        run_parser.add_argument('--selections', required=True, help='Selections as a JSON object')
        run_parser.add_argument('--profile', default=None, help='User profile as a JSON object (default: intermediate)')
        run_parser.add_argument('--json', action='store_true', help='Print the full result as JSON')

        workout_parser = analyze_subparsers.add_parser('workout', help='Generate a workout with OpenAI')
        workout_parser.add_argument('--selections', required=True, help='Selections as a JSON object')
        workout_parser.add_argument('--profile', default=None, help='User profile as a JSON object (default: intermediate)')
        workout_parser.add_argument('--json', action='store_true', help='Print the workout as JSON')

    def _add_health_parser(self, subparsers):
        """Add health command parser."""
        health_parser = subparsers.add_parser(
            'health',
            help='System health monitoring and recovery'
        )

        health_subparsers = health_parser.add_subparsers(
            dest='subcommand',
            help='Health operations',
            metavar='{check,recover}'
        )

        check_parser = health_subparsers.add_parser('check', help='Run comprehensive health check')
        check_parser.add_argument('--json', action='store_true', help='Print the report as JSON')

        recover_parser = health_subparsers.add_parser('recover', help='Force recovery of all analyzers')
        recover_parser.add_argument('--json', action='store_true', help='Print the report as JSON')

    def _add_learning_parser(self, subparsers):
        """Add learning command parser."""
        learning_parser = subparsers.add_parser(
            'learning',
            help='Recommendation feedback and learned weights'
        )

        learning_subparsers = learning_parser.add_subparsers(
            dest='subcommand',
            help='Learning operations',
            metavar='{feedback,insights}'
        )

        feedback_parser = learning_subparsers.add_parser('feedback', help='Record feedback for a recommendation')
        feedback_parser.add_argument('--recommendation-id', dest='recommendation_id', required=True,
                                     help='Recommendation id the feedback is for')
        feedback_parser.add_argument('--feedback', required=True, choices=FEEDBACK_VALUES, help='Feedback value')

        insights_parser = learning_subparsers.add_parser('insights', help='Show learning insights')
        insights_parser.add_argument('--json', action='store_true', help='Print insights as JSON')

    def _get_examples_text(self) -> str:
        """Get examples text for help."""
        return """
Examples:
  python run.py analyze run --selections '{"energy": 3, "duration": 30, "focus": "strength"}'
  python run.py analyze run --selections '{"energy": 2}' --profile '{"fitness_level": "beginner", "goals": []}' --json
  python run.py analyze workout --selections '{"focus": "strength", "duration": 45}'

  python run.py health check
  python run.py health recover

  python run.py learning feedback --recommendation-id conflict_energy_focus_1 --feedback helpful
  python run.py learning insights
"""

    def route_command(self, args: Optional[List[str]] = None) -> int:
        """
        Route command to appropriate handler.

        Args:
            args: Command line arguments (uses sys.argv if None)

        Returns:
            Exit code
        """
        try:
            if args is None:
                args = sys.argv[1:]

            parsed_args = self.parser.parse_args(args)

            if not parsed_args.command:
                self.parser.print_help()
                return 1

            return self._handle_command(parsed_args)

        except SystemExit as e:
            # argparse calls sys.exit() on error or help
            return e.code if e.code is not None else 0
        except Exception as e:
            logger.error(f"CLI routing error: {e}", exc_info=True)
            return 1

    def _handle_command(self, args: argparse.Namespace) -> int:
        """Handle command structure."""
        logger.debug(f"Handling command: {args.command}")

        if args.command not in COMMANDS:
            available = ', '.join(COMMANDS.keys())
            logger.error(f"Unknown command '{args.command}'. Available: {available}")
            return 1

        subcommand = getattr(args, 'subcommand', None)
        if not subcommand:
            logger.error(f"No subcommand specified for '{args.command}'")
            self.parser.parse_args([args.command, '--help'])  # Show help
            return 1

        try:
            command = get_command(args.command, self.container)
            return command.execute(subcommand, args)
        except Exception as e:
            logger.error(f"Error executing {args.command} {subcommand}: {e}", exc_info=True)
            return 1


def main(args: Optional[List[str]] = None, container=None) -> int:
    """
    Main CLI entry point.

    Args:
        args: Command line arguments (uses sys.argv if None)
        container: Optional container for the commands (global if None)

    Returns:
        Exit code
    """
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    try:
        get_config_manager().update_logging()
    except ValueError as e:
        logger.error(str(e))
        return 22

    router = CLIRouter(container)
    return router.route_command(args)


if __name__ == '__main__':
    exit_code = main()
    sys.exit(exit_code)
