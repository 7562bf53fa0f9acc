"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from iacguard.documents import load_document
from iacguard.rules import load_rules
from iacguard.rules.schema import RuleFile


@pytest.fixture
def fixtures_path() -> Path:
    """Path to the fixture rules and templates."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def s3_rules(fixtures_path: Path) -> RuleFile:
    """The S3 server-side encryption rule file."""
    return load_rules(fixtures_path / "s3_bucket_encryption.guard")


@pytest.fixture
def encrypted_template(fixtures_path: Path) -> dict:
    return load_document(fixtures_path / "encrypted_bucket.yaml")


@pytest.fixture
def unencrypted_template(fixtures_path: Path) -> dict:
    return load_document(fixtures_path / "unencrypted_bucket.yaml")


def _bucket(algorithm: str | None = "AES256", *, encrypted: bool = True) -> dict:
    """Build an AWS::S3::Bucket resource, optionally without BucketEncryption."""
    props: dict = {"BucketName": "bucket"}
    if encrypted:
        props["BucketEncryption"] = {
            "ServerSideEncryptionConfiguration": [
                {"ServerSideEncryptionByDefault": {"SSEAlgorithm": algorithm}},
            ]
        }
    return {"Type": "AWS::S3::Bucket", "Properties": props}


@pytest.fixture
def make_bucket():
    """Factory for S3 bucket resources."""
    return _bucket
