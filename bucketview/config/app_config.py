"""
Filesystem configuration from the environment.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# Roots: a local directory, s3://bucket[/prefix] for one bucket, or s3:// for the whole account
FILE_SYSTEM_ROOT = os.environ.get('FILE_SYSTEM_ROOT', '')
FILE_SYSTEMS = os.environ.get('FILE_SYSTEMS', '')
SITES = os.environ.get('SITES', '')

MAX_DIRECTORY_ENTRIES = int(os.environ.get('MAX_DIRECTORY_ENTRIES', '-1'))

AWS_REGION = os.environ.get('AWS_REGION') or os.environ.get('AWS_DEFAULT_REGION') or 'us-east-1'
AWS_PROFILE = os.environ.get('AWS_PROFILE') or None
AWS_ACCESS_KEY_ID = os.environ.get('AWS_ACCESS_KEY_ID') or None
AWS_SECRET_ACCESS_KEY = os.environ.get('AWS_SECRET_ACCESS_KEY') or None
AWS_SESSION_TOKEN = os.environ.get('AWS_SESSION_TOKEN') or None

S3_ENDPOINT_URL = os.environ.get('S3_ENDPOINT_URL')
if S3_ENDPOINT_URL:
    S3_ENDPOINT_URL = S3_ENDPOINT_URL.split('#')[0].strip() or None
S3_USE_PATH_STYLE = os.environ.get('S3_USE_PATH_STYLE', 'false').lower() == 'true'
S3_VERIFY_SSL = os.environ.get('S3_VERIFY_SSL', 'true').lower() == 'true'
S3_CONNECT_TIMEOUT = float(os.environ.get('S3_CONNECT_TIMEOUT', '10'))
S3_READ_TIMEOUT = float(os.environ.get('S3_READ_TIMEOUT', '60'))

LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
