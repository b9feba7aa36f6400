"""
Client for Content Service API

Provides the module / topic hierarchy used by the module-completion
evaluator. The Content Service owns modules and topics; this service only
reads them.
"""
import httpx
import logging
from typing import Dict, Any, List
from achievement_service.config import get_settings
from achievement_service.exceptions import DataAccessError

settings = get_settings()
logger = logging.getLogger(__name__)


def _normalize_module(module: Dict[str, Any]) -> Dict[str, Any]:
    """Coerce ids to strings and default missing active flags to True"""
    topics = [
        {
            'id': str(topic['id']),
            'active': bool(topic.get('active', True)),
        }
        for topic in module.get('topics', [])
    ]
    return {
        'id': str(module['id']),
        'name': module.get('name'),
        'active': bool(module.get('active', True)),
        'topics': topics,
    }


async def get_modules() -> List[Dict[str, Any]]:
    """
    Get all modules with their topics from Content Service
    
    Returns:
        List of {id, name, active, topics: [{id, active}]}
    
    Raises:
        DataAccessError: If the Content Service is unreachable, answers with an error
            or returns a malformed module list
    """
    try:
        async with httpx.AsyncClient(timeout=settings.CONTENT_SERVICE_TIMEOUT_SECONDS) as client:
            response = await client.get(
                f"{settings.CONTENT_SERVICE_URL}/modules",
                params={"include_topics": "true"}
            )
            response.raise_for_status()
            modules = [_normalize_module(m) for m in response.json()]
            
            logger.info(f"Retrieved {len(modules)} modules from Content Service")
            return modules
            
    except httpx.HTTPError as e:
        logger.error(f"Error fetching modules from Content Service: {str(e)}")
        raise DataAccessError("get_modules", str(e)) from e
    except (ValueError, KeyError, TypeError) as e:
        logger.error(f"Malformed module list from Content Service: {str(e)}")
        raise DataAccessError("get_modules", f"malformed response: {str(e)}") from e
