#!/usr/bin/env python3
"""
Describe cache warming script.
Pre-populates the describe cache for commonly queried objects.
Run this periodically or on startup.
"""

import argparse
import asyncio
import json
import os
import sys
from datetime import datetime
from typing import Any, Dict, List

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sfplanner.errors import ErrorClassifier
from sfplanner.logging_config import configure_logging
from sfplanner.schema import (
    DEFAULT_ORG,
    DescribeCache,
    ObjectDescriber,
    StaticMetadataProvider,
    build_index,
    expand_index,
    get_describe_cache
)

DEFAULT_OBJECTS = ["Account", "Contact", "Opportunity", "Case"]


class DescribeCacheWarmer:
    """Describe cache warming utility"""
    
    def __init__(self, describer: ObjectDescriber, cache: DescribeCache,
                 org_id: str = DEFAULT_ORG, depth: int = 0):
        self.describer = describer
        self.cache = cache
        self.org_id = org_id
        self.depth = depth
        self.results: List[Dict[str, Any]] = []
    
    async def warm_all(self, object_names: List[str]) -> List[Dict[str, Any]]:
        """Describe every object (and neighbors up to depth) through the cache"""
        print(f"[{datetime.now()}] Starting describe cache warming...")
        print(f"[{datetime.now()}] Objects to warm: {len(object_names)} (depth {self.depth})")
        
        for name in object_names:
            self.results.append(await self._warm_object(name))
        
        success = sum(1 for r in self.results if r["status"] == "success")
        failed = sum(1 for r in self.results if r["status"] == "error")
        
        print(f"\n[{datetime.now()}] Describe cache warming complete!")
        print(f"  Success: {success}")
        print(f"  Failed: {failed}")
        print(f"  Total: {len(self.results)}")
        
        return self.results
    
    async def _warm_object(self, name: str) -> Dict[str, Any]:
        print(f"  Warming: {name}...", end=" ")
        start = datetime.now()
        
        index = await build_index(self.describer, [name], cache=self.cache, org_id=self.org_id)
        if name in index.failures:
            error = index.failures[name]
            print(f"FAILED: {error.code}")
            return {"name": name, "status": "error", "error": error.to_dict()}
        
        if self.depth:
            index = await expand_index(self.describer, index, name, self.depth,
                                       cache=self.cache, org_id=self.org_id)
        
        duration = (datetime.now() - start).total_seconds()
        print(f"OK ({len(index)} objects, {duration:.2f}s)")
        return {
            "name": name,
            "status": "success",
            "objects": len(index),
            "failures": sorted(index.failures),
            "duration": duration,
        }


async def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(description="Describe cache warming script")
    parser.add_argument("--snapshot", required=True, help="Metadata snapshot JSON file to describe from")
    parser.add_argument("--objects", nargs="*", default=DEFAULT_OBJECTS, help="Objects to warm")
    parser.add_argument("--org-id", default=DEFAULT_ORG, help="Org id the cache entries belong to")
    parser.add_argument("--depth", type=int, default=0, help="Also warm neighbors up to this depth")
    parser.add_argument("--dry-run", action="store_true", help="Show what would be warmed without describing")
    args = parser.parse_args()
    
    configure_logging()
    
    if args.dry_run:
        print("Dry run - would warm the following objects:")
        for name in args.objects:
            print(f"  - {name}")
        return 0
    
    with open(args.snapshot) as f:
        provider = StaticMetadataProvider(json.load(f))
    
    warmer = DescribeCacheWarmer(provider, get_describe_cache(), org_id=args.org_id, depth=args.depth)
    try:
        results = await warmer.warm_all(args.objects)
    except Exception as e:
        print(json.dumps(ErrorClassifier.classify(e).to_dict(), indent=2))
        return 1
    return 0 if all(r["status"] == "success" for r in results) else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
