import setuptools
from pathlib import Path

with open("README.md", "r") as fh:
    long_description = fh.read()


requirements = Path('requirements.txt').read_text().splitlines()
test_requirements = Path('requirements-dev.txt').read_text().splitlines()


setuptools.setup(
    name="bucketowner",
    keywords='aws s3 account-id enumeration',
    version="0.1.0",
    description="Discovers the AWS account ID that owns an S3 bucket through s3:ResourceAccount session policies.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=setuptools.find_packages(include=['bucketowner', 'bucketowner.*']),
    entry_points = {
        'console_scripts': ['bucketowner=bucketowner.__main__:main'],
    },
    python_requires='>=3.8',
    install_requires=requirements,
    extras_require={
        "test": test_requirements,
    },
    classifiers=(
        'Development Status :: 4 - Beta',
        'Intended Audience :: Information Technology',
        'License :: OSI Approved :: BSD License',
        'Operating System :: OS Independent',
        'Natural Language :: English',
        'Topic :: Security',
        'Programming Language :: Python :: 3',
    ),
)
