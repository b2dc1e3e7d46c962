"""Install the API user accounts service."""

from setuptools import setup, find_packages

setup(
    name='apiusers',
    version='0.1.0',
    packages=find_packages(exclude=['*tests*']),
    py_modules=['wsgi', 'create_account'],
    install_requires=[
        "flask",
        "flask-sqlalchemy",
        "sqlalchemy",
        "werkzeug",
        "wtforms",
        "argon2-cffi",
        "retry",
        "python-json-logger",
        "click",
        "pytz"
    ],
    extras_require={
        'test': ['pytest', 'hypothesis']
    },
    zip_safe=False
)
