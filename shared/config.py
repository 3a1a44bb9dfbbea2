import os


def _flag(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).lower() == 'true'


class Config:
    # Registry
    REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379')
    TABLE_NAME = os.getenv('TABLE_NAME', 'TenantOnboarding')
    REGISTRY_TIMEOUT = float(os.getenv('REGISTRY_TIMEOUT', '5'))
    STREAM_MAX_LEN = int(os.getenv('STREAM_MAX_LEN', '100000'))

    # Stack backend (Infrastructure Manager)
    GCP_PROJECT_ID = os.getenv('GCP_PROJECT_ID', '')
    GCP_REGION = os.getenv('GCP_REGION', 'us-central1')
    TEMPLATE_URL = os.getenv('TEMPLATE_URL', '')
    STACK_SERVICE_ACCOUNT = os.getenv('STACK_SERVICE_ACCOUNT', '')
    STACK_OPERATION_TIMEOUT = float(os.getenv('STACK_OPERATION_TIMEOUT', '60'))
    STACK_WAIT_FOR_COMPLETION = _flag('STACK_WAIT_FOR_COMPLETION')
    USE_LOCAL_STACKS = _flag('USE_LOCAL_STACKS')

    # Change feed
    FEED_CONSUMER_GROUP = os.getenv('FEED_CONSUMER_GROUP', 'provisioner')
    FEED_CONSUMER_NAME = os.getenv('FEED_CONSUMER_NAME', os.getenv('HOSTNAME', 'provisioner-1'))
    FEED_BATCH_SIZE = int(os.getenv('FEED_BATCH_SIZE', '100'))
    FEED_BLOCK_MS = int(os.getenv('FEED_BLOCK_MS', '5000'))
    FEED_CLAIM_IDLE_MS = int(os.getenv('FEED_CLAIM_IDLE_MS', '60000'))
    FEED_IDLE_SLEEP = float(os.getenv('FEED_IDLE_SLEEP', '1'))

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    DEBUG = True
    USE_LOCAL_STACKS = _flag('USE_LOCAL_STACKS', 'true')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'DEBUG')


class TestingConfig(Config):
    TESTING = True
    TABLE_NAME = 'TenantOnboardingTest'
    USE_LOCAL_STACKS = True
    GCP_PROJECT_ID = 'test-project'
    TEMPLATE_URL = 'gs://tenant-templates/infra'
    STACK_SERVICE_ACCOUNT = 'provisioner@test-project.iam.gserviceaccount.com'
    FEED_CONSUMER_NAME = 'test-consumer'
    FEED_BLOCK_MS = 0
    FEED_IDLE_SLEEP = 0


class ProductionConfig(Config):
    DEBUG = False
    USE_LOCAL_STACKS = False


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}


def get_config(config_name: str = None):
    if config_name is None:
        config_name = os.getenv('APP_ENV', 'development')
    return config.get(config_name, config['default'])
