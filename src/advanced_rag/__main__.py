from advanced_rag.cli import main

main()
