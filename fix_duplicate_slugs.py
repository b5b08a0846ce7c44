#!/usr/bin/env python3
"""
Repair category slugs left over from the first schema version:
drops the global unique index on categories.slug (if still present) and
renames same-user duplicate slugs to slug-1, slug-2, ...
"""
import asyncio
import sys
import platform

from portfolio.core.database import AsyncSessionLocal, engine
from portfolio.crud.category import drop_legacy_slug_index, reconcile_duplicate_slugs

async def fix_slugs():
    """Run both repairs and report what changed"""
    try:
        async with AsyncSessionLocal() as session:
            print("🔗 Connected to database")

            print("\n🔄 Checking legacy slug index...")
            await drop_legacy_slug_index(session)

            print("\n📋 Reconciling duplicate slugs:")
            renamed = await reconcile_duplicate_slugs(session)
            if renamed:
                for category_id, old_slug, new_slug in renamed:
                    print(f"   ✅ {category_id}: {old_slug} -> {new_slug}")
            else:
                print("   ✅ No duplicate slugs found")

        print("\n✅ Slug repair completed successfully!")

    except Exception as e:
        print(f"❌ Slug repair failed: {str(e)}")
        sys.exit(1)
    finally:
        await engine.dispose()

def main():
    if platform.system() == 'Windows':
        asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())

    asyncio.run(fix_slugs())

if __name__ == "__main__":
    main()
