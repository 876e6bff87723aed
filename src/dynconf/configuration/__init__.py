"""
Dynamic Configuration

Priority-ordered configuration sources, change detection with listener
notification, scheduled refresh and builder utilities.
"""

from .store import KeyValueStore

from .results import RefreshResult

from .sources import (
    ConfigurationSource,
    StoreBackedSource,
    InMemoryConfigurationSource,
    YAMLConfigurationSource,
    EnvironmentConfigurationSource
)

from .events import (
    ChangeType,
    ConfigurationChangeEvent,
    diff_snapshots
)

from .composite import CompositeConfigurationSource

from .notifier import (
    ChangeListener,
    ChangeNotifier,
    ListenerRegistration
)

from .scheduler import RefreshScheduler

from .core import DynamicConfiguration

from .encryption import (
    ENCRYPTED_PREFIX,
    ConfigurationDecryptor,
    FernetConfigurationEncryptor,
    EncryptedConfigurationSource
)

from .models import (
    LoggingConfiguration,
    RefreshConfiguration,
    EngineConfiguration
)

from .builder import ConfigurationBuilder

from .utils import (
    load_configuration_from_file,
    load_default_configuration,
    create_configuration_builder,
    load_engine_configuration,
    configure_logging,
    create_flag_engine
)

__all__ = [
    # Storage and results
    'KeyValueStore',
    'RefreshResult',

    # Sources
    'ConfigurationSource',
    'StoreBackedSource',
    'InMemoryConfigurationSource',
    'YAMLConfigurationSource',
    'EnvironmentConfigurationSource',
    'CompositeConfigurationSource',
    'EncryptedConfigurationSource',

    # Change detection
    'ChangeType',
    'ConfigurationChangeEvent',
    'diff_snapshots',
    'ChangeListener',
    'ChangeNotifier',
    'ListenerRegistration',
    'RefreshScheduler',

    # Core
    'DynamicConfiguration',

    # Encryption
    'ENCRYPTED_PREFIX',
    'ConfigurationDecryptor',
    'FernetConfigurationEncryptor',

    # Models
    'LoggingConfiguration',
    'RefreshConfiguration',
    'EngineConfiguration',

    # Builder
    'ConfigurationBuilder',

    # Utilities
    'load_configuration_from_file',
    'load_default_configuration',
    'create_configuration_builder',
    'load_engine_configuration',
    'configure_logging',
    'create_flag_engine'
]
