from django.conf import settings


def pytest_configure():
    settings.configure(
        SECRET_KEY='test-secret-key',
        INSTALLED_APPS=[
            'unified_upi',
        ],
        DATABASES={},
        USE_TZ=True,
    )
