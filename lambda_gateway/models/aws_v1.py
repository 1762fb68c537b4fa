# lambda_gateway/models/aws_v1.py

"""
Pydantic models for AWS API Gateway v1 (REST API) proxy integration.

Reference: https://docs.aws.amazon.com/apigateway/latest/developerguide/set-up-lambda-proxy-integrations.html

APIGatewayProxyEvent is the event handed to a function; ProxyResult is the
shape a function must return before the gateway trusts it.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class APIGatewayProxyEvent(BaseModel):
    """
    AWS API Gateway Proxy Integration (v1) Event Structure

    Defines the structure of the event object received by functions.
    Use model_dump() to convert to a dict.
    """

    resource: str = "/{proxy+}"
    path: str
    httpMethod: str
    headers: Dict[str, str] = Field(default_factory=dict)
    multiValueHeaders: Dict[str, List[str]] = Field(default_factory=dict)
    queryStringParameters: Dict[str, str] = Field(default_factory=dict)
    multiValueQueryStringParameters: Dict[str, List[str]] = Field(default_factory=dict)
    pathParameters: Dict[str, str] = Field(default_factory=dict)
    stageVariables: Dict[str, str] = Field(default_factory=dict)
    # Anything the request-context hook returns.
    requestContext: Any = Field(default_factory=dict)
    body: str = ""
    isBase64Encoded: bool = False


class ProxyResult(BaseModel):
    """
    Proxy integration result returned by a function.

    Strict: a worker reporting "200" or 1 instead of 200 or true is a
    protocol violation, not something to coerce.
    """

    model_config = ConfigDict(strict=True)

    statusCode: int
    headers: Dict[str, Any]
    multiValueHeaders: Optional[Dict[str, Any]] = None
    body: str
    isBase64Encoded: bool
