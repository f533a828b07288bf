#!/usr/bin/env python3
"""
Base command class for the modular command architecture.

Provides common functionality and interface that all commands inherit.
Uses dependency injection for better testability and maintainability.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from argparse import Namespace
from core.container import get_container
from core.exceptions import ContextError, StrategyNotConfiguredError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_PROFILE = {
    'fitness_level': 'intermediate',
    'goals': ['general_fitness']
}


class BaseCommand(ABC):
    """
    Base class for all command endpoints.

    Provides common infrastructure like configuration, the analysis
    orchestrator and error handling that all commands can use. Uses the
    dependency injection container for managing service instances.
    """

    def __init__(self, container=None):
        """
        Initialize base command with dependency injection container.

        Args:
            container: Optional container instance. If None, uses global container.
        """
        self.logger = logging.getLogger(self.__class__.__name__)
        self._container = container or get_container()

    @property
    def config(self):
        """Get configuration from container."""
        return self._container.get('config')

    @property
    def orchestrator(self):
        """Get analysis orchestrator from container."""
        return self._container.get('orchestrator')

    @property
    def learning_engine(self):
        """Get learning engine from container."""
        return self._container.get('learning_engine')

    def create_openai_strategy(self):
        """Create new OpenAI strategy instance."""
        return self._container.get('openai_strategy')

    def build_context(self, selections: Optional[str], profile: Optional[str]) -> Dict[str, Any]:
        """
        Build an analysis context from JSON command line arguments.

        Raises:
            ValueError: If either argument is not a JSON object
        """
        return {
            'user_profile': self.parse_json_object(profile, 'profile') if profile else dict(DEFAULT_PROFILE),
            'current_selections': self.parse_json_object(selections, 'selections') if selections else {}
        }

    @staticmethod
    def parse_json_object(raw: str, name: str) -> Dict[str, Any]:
        try:
            value = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"--{name} is not valid JSON: {e}") from e
        if not isinstance(value, dict):
            raise ValueError(f"--{name} must be a JSON object")
        return value

    @abstractmethod
    def execute(self, subcommand: str, args: Namespace) -> int:
        """
        Execute the command with given subcommand and arguments.

        Args:
            subcommand: The specific action to perform
            args: Parsed command line arguments

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        pass

    def get_available_subcommands(self) -> List[str]:
        """
        Get list of available subcommands for this command.

        Returns:
            List of subcommand names
        """
        return list(getattr(self, 'SUBCOMMANDS', ()))

    def handle_error(self, error: Exception, context: str = "") -> int:
        """
        Standard error handling for commands.

        Args:
            error: The exception that occurred
            context: Additional context about where the error occurred

        Returns:
            Appropriate exit code
        """
        error_msg = f"{context}: {error}" if context else str(error)

        # Map common exceptions to exit codes
        if isinstance(error, KeyboardInterrupt):
            self.logger.info("Command interrupted by user")
            return 130
        elif isinstance(error, (ValueError, ValidationError, ContextError)):
            self.logger.error(error_msg)
            return 22
        elif isinstance(error, StrategyNotConfiguredError):
            self.logger.error(error_msg)
            return 3
        else:
            self.logger.error(error_msg, exc_info=True)
            return 1

    def validate_args(self, args: Namespace, required_args: List[str] = None) -> bool:
        """
        Validate that required arguments are present.

        Args:
            args: Parsed arguments
            required_args: List of required argument names

        Returns:
            True if valid, False otherwise
        """
        if not required_args:
            return True

        missing = []
        for arg_name in required_args:
            if not hasattr(args, arg_name) or getattr(args, arg_name) is None:
                missing.append(arg_name)

        if missing:
            self.logger.error(f"Missing required arguments: {', '.join(missing)}")
            return False

        return True
