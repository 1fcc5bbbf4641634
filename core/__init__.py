"""Core application components."""

# Import in correct order to avoid circular dependencies
from core.logger import setup_logger, get_logger
from core.constants import (
    ActivitySeverity,
    CacheDefaults,
    CustomerDefaults,
    DatabaseDefaults,
    LotteryDefaults,
    LotteryStatus,
    LotteryType,
    PollingDefaults,
    RateLimitDefaults,
    ReportDefaults,
    SELLING_ROLES,
    SellerRole,
    TicketStatus,
)
from core.exceptions import (
    AlreadyResolved,
    ApplicationError,
    AuthenticationError,
    ConfigurationError,
    ConflictError,
    DatabaseError,
    InvalidCustomer,
    InvalidSeller,
    InvalidTicketNumber,
    LotteryNotActive,
    LotteryNotEnded,
    NotFoundError,
    RateLimitError,
    ResolutionConflict,
    StateError,
    TicketAlreadySold,
    UnknownPrizeRank,
    ValidationError,
    Violation,
    WinnerValidationError,
)

__all__ = [
    # Initializer
    'ApplicationInitializer',
    # Logging
    'setup_logger',
    'get_logger',
    # Constants
    'ActivitySeverity',
    'CacheDefaults',
    'CustomerDefaults',
    'DatabaseDefaults',
    'LotteryDefaults',
    'LotteryStatus',
    'LotteryType',
    'PollingDefaults',
    'RateLimitDefaults',
    'ReportDefaults',
    'SELLING_ROLES',
    'SellerRole',
    'TicketStatus',
    # Exceptions
    'AlreadyResolved',
    'ApplicationError',
    'AuthenticationError',
    'ConfigurationError',
    'ConflictError',
    'DatabaseError',
    'InvalidCustomer',
    'InvalidSeller',
    'InvalidTicketNumber',
    'LotteryNotActive',
    'LotteryNotEnded',
    'NotFoundError',
    'RateLimitError',
    'ResolutionConflict',
    'StateError',
    'TicketAlreadySold',
    'UnknownPrizeRank',
    'ValidationError',
    'Violation',
    'WinnerValidationError',
]

# Import ApplicationInitializer last to avoid circular imports
from core.app_initializer import ApplicationInitializer
