# src/filepi/api_server/dependencies.py
# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 AZHAR ZOUHIR / BYTEDz

from typing import Optional

from fastapi import Query, Request

from ..core import constants
from ..services import Services
from ..services.paginator import ListingQuery, SortField, SortOrder


def get_services(request: Request) -> Services:
    return request.app.state.services


def listing_query(
    path: str = Query("", description="Directory relative to the root."),
    skip: int = Query(constants.DEFAULT_SKIP),
    limit: int = Query(constants.DEFAULT_LIMIT),
    sort_by: Optional[str] = Query(None, description="name, size, modified_time, created_time or file_type"),
    order: Optional[str] = Query(None, description="asc (default) or desc"),
    skip_hidden: bool = Query(False),
    query: Optional[str] = Query(None, description="Case-insensitive filename substring (search only)."),
) -> ListingQuery:
    return ListingQuery(
        path=path,
        skip_hidden=skip_hidden,
        sort_field=SortField.parse(sort_by),
        order=SortOrder.parse(order),
        skip=skip,
        limit=limit,
        query=query,
    )
