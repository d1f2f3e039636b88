"""
Lambda function to process CSV uploads stored in S3.
Triggered by S3 ObjectCreated events when PROCESSING_MODE=lambda.
"""
import json
import re
from typing import Optional
from urllib.parse import unquote_plus
from src.core.logging_config import get_logger
from src.services.ingestion_pipeline import IngestionPipeline

logger = get_logger(__name__)

UPLOAD_KEY_PATTERN = re.compile(r'^uploads/([^/]+)/[^/]+$')


def handler(event, context):
    """
    Lambda handler for S3 event processing.

    Each record is one upload; records are processed one after another and
    a failure in one does not stop the others.

    Args:
        event: S3 event containing bucket and object information
        context: Lambda context object

    Returns:
        dict: statusCode and a body with one result per record
    """
    pipeline = IngestionPipeline()
    results = []
    status_code = 200

    for record in event.get('Records', []):
        s3_key = unquote_plus(record['s3']['object']['key'])
        upload_id = _extract_upload_id(s3_key)

        if not upload_id:
            logger.warning("Ignoring object outside the uploads prefix: %s", s3_key)
            results.append({'s3_key': s3_key, 'status': 'ignored'})
            continue

        try:
            result = pipeline.run(upload_id, s3_key)
        except Exception as e:
            logger.exception("Upload %s could not be finalized", upload_id)
            status_code = 500
            results.append({'upload_id': upload_id, 's3_key': s3_key, 'status': 'error', 'message': str(e)})
            continue

        results.append({
            'upload_id': upload_id,
            's3_key': s3_key,
            'status': result.status.value if result.status else ('abandoned' if result.abandoned else 'skipped'),
            'total_rows': result.total_rows,
            'processed_rows': result.processed_rows,
            'errors': result.error_count
        })

    return {
        'statusCode': status_code,
        'body': json.dumps({'results': results})
    }


def _extract_upload_id(s3_key: str) -> Optional[str]:
    """
    Extract upload_id from S3 key.
    Expected format: uploads/{upload_id}/{stored_name}

    Returns:
        upload_id or None if the key does not match
    """
    match = UPLOAD_KEY_PATTERN.match(s3_key)
    return match.group(1) if match else None
