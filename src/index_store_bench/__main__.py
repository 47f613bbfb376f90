from index_store_bench.cli import main


raise SystemExit(main())
