#!/usr/bin/env python3
"""
Quick script to verify a running Midway API is answering correctly
"""

import os
import sys
import time

import requests

BASE_URL = os.getenv('MIDWAY_URL', 'http://localhost:5001')


def check_health():
    """Test if the API server is responding"""
    try:
        response = requests.get(f'{BASE_URL}/', timeout=5)
    except requests.exceptions.ConnectionError:
        print(f"❌ Cannot connect to API server ({BASE_URL})")
        return False
    if response.status_code != 200 or response.json().get('status') != 'healthy':
        print(f"❌ API Server returned status code: {response.status_code}")
        return False
    print("✅ API Server is running and healthy")
    return True


def check_geocoding():
    """Test the geocoding API endpoint"""
    response = requests.post(f'{BASE_URL}/api/geocode',
                             json={"address": "Times Square, New York, NY"}, timeout=10)
    data = response.json()
    if response.status_code == 200 and data.get('success'):
        print("✅ Geocoding API is working")
        return True
    print(f"❌ Geocoding failed: {data.get('error', 'Unknown error')}")
    return False


def check_meeting_venues():
    """Run a real two-person search and print the top venues"""
    payload = {
        "origins": ["Times Square, New York, NY", "Brooklyn Bridge, New York, NY"],
        "mode": "transit",
        "categories": ["cafe", "restaurant"],
        "max_results": 5,
    }
    response = requests.post(f'{BASE_URL}/api/find-meeting-venues', json=payload, timeout=60)
    data = response.json()
    if response.status_code != 200 or not data.get('success'):
        print(f"❌ Meeting search failed: {data.get('error', 'Unknown error')}")
        return False
    result = data['data']
    print(f"✅ Meeting search answered with tier={result['tier_used']} venues={result['venue_count']}")
    for venue in result['venues']:
        print(f"   {venue['name']}: {venue['travel_minutes_by_origin']} min, score {venue['composite_score']}")
    return True


def main():
    print("🧪 Checking Midway API")
    print("="*50)

    checks = [
        ("API Server Health", check_health),
        ("Geocoding API", check_geocoding),
        ("Meeting Venues API", check_meeting_venues),
    ]

    passed = 0
    for name, check in checks:
        print(f"\n🔍 Testing {name}...")
        try:
            if check():
                passed += 1
        except requests.exceptions.RequestException as e:
            print(f"❌ Error testing {name}: {e}")
        time.sleep(1)  # Brief pause between checks

    print("\n" + "="*50)
    print(f"📊 Results: {passed}/{len(checks)} checks passed")
    return passed == len(checks)


if __name__ == '__main__':
    sys.exit(0 if main() else 1)
