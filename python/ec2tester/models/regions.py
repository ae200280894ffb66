"""
ec2tester/models/regions.py

AWS region names and the airport code used as a short, human-readable label
for each one (e.g. 'us-west-2' => 'PDX'). Cluster names embed the lower-cased
label, so an unknown region cannot produce a cluster name.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional


class AwsRegion(str, Enum):
    US_EAST_1 = "us-east-1"  # Virginia
    US_EAST_2 = "us-east-2"  # Ohio
    US_WEST_1 = "us-west-1"  # N. California
    US_WEST_2 = "us-west-2"  # Oregon
    AP_EAST_1 = "ap-east-1"
    AP_SOUTH_1 = "ap-south-1"
    AP_NORTHEAST_1 = "ap-northeast-1"
    AP_NORTHEAST_2 = "ap-northeast-2"
    AP_NORTHEAST_3 = "ap-northeast-3"
    AP_SOUTHEAST_1 = "ap-southeast-1"
    AP_SOUTHEAST_2 = "ap-southeast-2"
    CA_CENTRAL_1 = "ca-central-1"
    CN_NORTH_1 = "cn-north-1"
    CN_NORTHWEST_1 = "cn-northwest-1"
    EU_CENTRAL_1 = "eu-central-1"
    EU_WEST_1 = "eu-west-1"
    EU_WEST_2 = "eu-west-2"
    EU_WEST_3 = "eu-west-3"
    EU_NORTH_1 = "eu-north-1"
    ME_SOUTH_1 = "me-south-1"
    SA_EAST_1 = "sa-east-1"
    US_GOV_EAST_1 = "us-gov-east-1"
    US_GOV_WEST_1 = "us-gov-west-1"


REGION_TO_AIRPORT: Dict[AwsRegion, str] = {
    AwsRegion.US_EAST_1: "IAD",
    AwsRegion.US_EAST_2: "CMH",
    AwsRegion.US_WEST_1: "SFO",
    AwsRegion.US_WEST_2: "PDX",
    AwsRegion.AP_EAST_1: "HKG",
    AwsRegion.AP_SOUTH_1: "BOM",
    AwsRegion.AP_NORTHEAST_1: "NRT",
    AwsRegion.AP_NORTHEAST_2: "ICN",
    AwsRegion.AP_NORTHEAST_3: "KIX",
    AwsRegion.AP_SOUTHEAST_1: "SIN",
    AwsRegion.AP_SOUTHEAST_2: "SYD",
    AwsRegion.CA_CENTRAL_1: "YUL",
    AwsRegion.CN_NORTH_1: "BJS",
    AwsRegion.CN_NORTHWEST_1: "ZHY",
    AwsRegion.EU_CENTRAL_1: "FRA",
    AwsRegion.EU_WEST_1: "DUB",
    AwsRegion.EU_WEST_2: "LHR",
    AwsRegion.EU_WEST_3: "CDG",
    AwsRegion.EU_NORTH_1: "ARN",
    AwsRegion.ME_SOUTH_1: "BAH",
    AwsRegion.SA_EAST_1: "GRU",
    AwsRegion.US_GOV_EAST_1: "CMH",
    AwsRegion.US_GOV_WEST_1: "PDT",
}


def region_to_airport(region: str) -> Optional[str]:
    """Return the airport label for a region name, or None if it is not known.

    Args:
        region (str): A region name such as 'us-west-2'.

    Returns:
        Optional[str]: The upper-case airport code, e.g. 'PDX'.
    """
    try:
        return REGION_TO_AIRPORT[AwsRegion(region)]
    except ValueError:
        return None
