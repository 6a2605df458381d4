from zeno_query_exporter.cli import main

main()
