"""
客户端IP解析
按常见代理头的顺序查找第一个合法IP，找不到时退回到连接对端地址
"""

import ipaddress
from typing import Iterable, List, Optional

from fastapi import Request

IP_HEADERS = (
    "X-Client-IP",
    "X-Forwarded-For",
    "HTTP-X-Forwarded-For",
    "Fly-Client-IP",
    "CF-Connecting-IP",
    "Fastly-Client-Ip",
    "True-Client-Ip",
    "X-Real-IP",
    "X-Cluster-Client-IP",
    "X-Forwarded",
    "Forwarded-For",
    "Forwarded",
    "DO-Connecting-IP",
    "oxygen-buyer-ip",
)


def is_valid_ip(value: Optional[str]) -> bool:
    if not value:
        return False
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def parse_forwarded_header(value: str) -> List[str]:
    """从 Forwarded 头中取出 for= 的值"""
    candidates = []
    for element in value.split(","):
        for part in element.split(";"):
            part = part.strip()
            if part.lower().startswith("for="):
                candidates.append(part[4:].strip('"'))
    return candidates


def _header_candidates(name: str, value: str) -> Iterable[str]:
    if name == "Forwarded":
        return parse_forwarded_header(value)
    return [ip.strip() for ip in value.split(",")]


def get_client_ip(request: Request) -> str:
    """返回客户端IP，无法确定时返回空字符串"""
    for name in IP_HEADERS:
        value = request.headers.get(name)
        if not value:
            continue
        for candidate in _header_candidates(name, value):
            if is_valid_ip(candidate):
                return candidate

    if request.client and is_valid_ip(request.client.host):
        return request.client.host
    return ""
